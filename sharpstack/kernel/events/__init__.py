"""Append-only audit events."""

from sharpstack.kernel.events.event_store import EventStore

__all__ = ["EventStore"]
