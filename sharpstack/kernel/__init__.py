"""
Kernel Layer

Persistence models, the append-only event log and token verification.
Engines depend on the kernel; the kernel depends on nothing above it.
"""
