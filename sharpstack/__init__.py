"""
SharpStack training core.

Drill progression, criteria-based scoring and blind spot detection
for the behavioural training platform.
"""

__version__ = "1.0.0"
