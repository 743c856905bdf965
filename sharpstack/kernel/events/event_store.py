"""
Event Store service for append-only audit logging.

Callers add events inside the transaction that performs the change, so the
audit row commits or rolls back together with it.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from sharpstack.kernel.models.event_log import EventLog, EventType


class EventStore:
    """
    Service over the immutable event log.

    Usage:
        event_store = EventStore(session)
        await event_store.log(
            event_type=EventType.SESSION_STARTED,
            entity_type="training_session",
            entity_id=training_session.id,
            user_id=user.id,
            payload={"mode": mode.slug, "level": 1},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        user_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> EventLog:
        """
        Append an event. The caller owns flush/commit.

        Args:
            event_type: The type of event
            entity_type: Kind of entity (training_session, email_send, user)
            entity_id: The ID of the entity
            user_id: Acting user, None for scheduler-driven events
            payload: Additional event data

        Returns:
            The pending EventLog row
        """
        event = EventLog(
            event_type=event_type.value,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            payload=self._serialize_payload(payload or {}),
        )
        self.session.add(event)
        return event

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        event_types: Optional[List[EventType]] = None,
        limit: int = 100,
    ) -> List[EventLog]:
        """Events for one entity, newest first."""
        query = select(EventLog).where(
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id,
        )
        if event_types:
            query = query.where(EventLog.event_type.in_([t.value for t in event_types]))
        query = query.order_by(desc(EventLog.created_at)).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_events(
        self,
        event_type: EventType,
        user_id: Optional[uuid.UUID] = None,
        since: Optional[datetime] = None,
    ) -> int:
        """Count events of one type, optionally per user and since a time."""
        query = select(func.count()).select_from(EventLog).where(
            EventLog.event_type == event_type.value
        )
        if user_id:
            query = query.where(EventLog.user_id == user_id)
        if since:
            query = query.where(EventLog.created_at >= since)

        result = await self.session.execute(query)
        return result.scalar_one()

    @classmethod
    def _serialize_payload(cls, value: Any) -> Any:
        """Make a payload JSON-safe (UUIDs, datetimes, enums)."""
        if isinstance(value, dict):
            return {str(k): cls._serialize_payload(v) for k, v in value.items()}
        if isinstance(value, (list, tuple, set)):
            return [cls._serialize_payload(v) for v in value]
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        return value
