"""
Domain event envelope

Every state change worth telling the outside world about is wrapped in an
Event. The aggregate buffers them, the repository stores them next to the
snapshot in the same transaction, and an external publisher drains them from
the outbox after commit - at-least-once, never before the write is durable.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class Event(BaseModel):
    """
    Immutable record of something that happened to an aggregate

    aggregate_id + version identify the event within its stream; command_id
    makes a repeated save of the same command a no-op.
    """

    event_id: str = Field(
        ...,
        description="Unique event identifier (time-ordered)",
    )

    aggregate_id: str = Field(
        ...,
        description="Identifier of the aggregate that emitted the event",
    )

    aggregate_type: str = Field(
        ...,
        description="Kind of aggregate: 'guardianship'",
    )

    event_type: str = Field(
        ...,
        description="Event name: 'GuardianshipCreated', 'GuardianReplaced', etc.",
    )

    occurred_at: datetime = Field(
        ...,
        description="UTC timestamp taken from the aggregate's clock",
    )

    actor_id: str | None = Field(
        default=None,
        description="Who issued the command (None for automatic transitions)",
    )

    command_id: str = Field(
        ...,
        description="Command that produced the event (idempotency key)",
    )

    payload: dict = Field(
        default_factory=dict,
        description="Event-specific data, JSON-serializable",
    )

    version: int = Field(
        ...,
        description="Aggregate version at emission",
        ge=1,
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "aggregate_id": "gdn-001",
                    "aggregate_type": "guardianship",
                    "event_type": "GuardianBondPosted",
                    "occurred_at": "2025-01-15T10:30:00Z",
                    "actor_id": "clerk-nairobi-04",
                    "command_id": "cmd-123",
                    "payload": {"guardian_id": "person-7", "provider": "Jubilee"},
                    "version": 4,
                }
            ]
        },
    }


def create_event(
    *,
    event_id: str,
    aggregate_id: str,
    aggregate_type: str,
    event_type: str,
    occurred_at: datetime,
    command_id: str,
    version: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """Build an Event from keyword arguments"""
    return Event(
        event_id=event_id,
        aggregate_id=aggregate_id,
        aggregate_type=aggregate_type,
        event_type=event_type,
        occurred_at=occurred_at,
        actor_id=actor_id,
        command_id=command_id,
        payload=payload or {},
        version=version,
    )
