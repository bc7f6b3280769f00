"""
Base Event model for event sourcing

Every change to a right or a chain of title is recorded as an immutable
event. The ledger's in-memory state is only ever a projection of this log.
"""

from datetime import datetime

from pydantic import BaseModel, Field

# Stream types used across the ledger
RIGHT_STREAM = "right"
TITLE_STREAM = "title_chain"


def right_stream_id(right_id: int) -> str:
    """Stream holding a right's issuance, transfers, custody and restrictions"""
    return f"right-{right_id}"


def title_stream_id(right_id: int) -> str:
    """Stream holding a right's chain of title entries"""
    return f"title-{right_id}"


class Event(BaseModel):
    """
    Base event class - all domain events are carried in this envelope

    Events are:
    - Immutable (never modified after creation)
    - Append-only (never deleted)
    - Versioned per stream (optimistic locking)
    - Replayable (projections are rebuilt from them at startup)

    The domain-specific fields live in ``payload``, produced by dumping one
    of the pydantic models in ``rights.events`` or ``title.events``.
    """

    event_id: str = Field(
        ...,
        description="Unique event identifier (UUIDv7-like for time-ordering)",
    )

    stream_id: str = Field(
        ...,
        description="Aggregate identifier, e.g. 'right-7' or 'title-7'",
    )

    stream_type: str = Field(
        ...,
        description="Type of aggregate: 'right' or 'title_chain'",
    )

    event_type: str = Field(
        ...,
        description="Specific event type: 'RightCreated', 'TitleEntryAdded', etc.",
    )

    occurred_at: datetime = Field(
        ...,
        description="UTC timestamp when event occurred",
    )

    actor_id: str | None = Field(
        default=None,
        description="Identity that triggered this event (None for system events)",
    )

    command_id: str = Field(
        ...,
        description="ID of the ledger operation that produced this event",
    )

    payload: dict = Field(
        default_factory=dict,
        description="Event-specific data (must be JSON-serializable)",
    )

    version: int = Field(
        ...,
        description="Stream version after this event (monotonically increasing)",
        ge=1,
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "examples": [
                {
                    "event_id": "01908e9a-3b87-7000-8000-123456789abc",
                    "stream_id": "right-1",
                    "stream_type": "right",
                    "event_type": "RightCreated",
                    "occurred_at": "2025-01-15T10:30:00Z",
                    "actor_id": "0x5c1f0e9d53f4a0b0c5e4c8e1e6f2b7a9d3c4e5f6",
                    "command_id": "01908e9a-3b87-7000-8000-123456789abd",
                    "payload": {"right_id": 1, "right_type": "DISTRIBUTION"},
                    "version": 1,
                }
            ]
        },
    }


def create_event(
    *,
    event_id: str,
    stream_id: str,
    stream_type: str,
    event_type: str,
    occurred_at: datetime,
    command_id: str,
    version: int,
    actor_id: str | None = None,
    payload: dict | None = None,
) -> Event:
    """Factory function for creating events with all required fields"""
    return Event(
        event_id=event_id,
        stream_id=stream_id,
        stream_type=stream_type,
        event_type=event_type,
        occurred_at=occurred_at,
        actor_id=actor_id,
        command_id=command_id,
        payload=payload or {},
        version=version,
    )
