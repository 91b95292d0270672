"""
Base class for cart events.

Events are immutable records of cart mutations that reached the backend.
The per-session event log is the source of truth; backend state is only a
cache that can be rebuilt from it.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any, Self
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


class CartEvent(BaseModel):
    """
    Base class for all cart events.

    The event_type field defaults to the class name and acts as the
    discriminator when events are deserialized with ``parse_event``.

    Attributes:
        event_id: Unique identifier for this event instance
        event_type: Type name of the event (the concrete class name)
        occurred_at: When the mutation was accepted (UTC). Informational only;
            ordering comes from the position in the log.
        item_id: Identifier of the cart line the event affects

    Example:
        >>> event = ItemRemoved(item_id="iphone15", quantity=1)
        >>> event.event_type
        'ItemRemoved'
    """

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier",
    )
    event_type: str = Field(
        default="",
        description="Type of event (the concrete class name)",
    )
    occurred_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When event occurred (UTC)",
    )
    item_id: str = Field(
        ...,
        min_length=1,
        description="Cart line this event applies to",
    )

    @model_validator(mode="before")
    @classmethod
    def _ensure_event_type(cls, data: Any) -> Any:
        """Fill in event_type from the class name when it is missing or empty."""
        if isinstance(data, dict) and not data.get("event_type"):
            data = dict(data)
            data["event_type"] = cls.__name__
        return data

    def __str__(self) -> str:
        return f"{self.event_type}(item_id={self.item_id}, event_id={self.event_id})"

    def to_dict(self) -> dict[str, Any]:
        """
        Convert event to a JSON-compatible dictionary.

        Returns:
            Dictionary representation with UUIDs and datetimes as strings
        """
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """
        Create an event of this class from a dictionary.

        Raises:
            ValidationError: If data doesn't match the event schema
        """
        return cls.model_validate(data)
