"""Change notification schema pushed over the broadcast channel."""

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from ecocapacity.models.enums import EventType


class ChangeEvent(BaseModel):
    """A typed "something changed" signal.

    Observers treat every event as a cache-invalidation signal and re-pull
    full state, so events carry no payload beyond their type.

    Attributes:
        type: Kind of change
        timestamp: When the change was published
        destination_id: Destination concerned, when the change is scoped to one
    """

    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    destination_id: str | None = None

    def to_sse(self) -> str:
        """Serialise as one Server-Sent Events frame."""
        return f"data: {self.model_dump_json(exclude_none=True)}\n\n"

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "capacity_update",
                "timestamp": "2025-06-01T09:30:00Z",
                "destination_id": "valley-of-flowers",
            }
        }
    }
