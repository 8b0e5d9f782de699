"""Base models for monotrack."""

from datetime import datetime, timezone
from typing import Optional, Any
import uuid
from pydantic import BaseModel, Field, ConfigDict, field_serializer


def new_id() -> str:
    """Generate a new printable 128-bit identifier."""
    return str(uuid.uuid4())


class TrackedModel(BaseModel):
    """Base model for records that are persisted by a change store.

    Includes automatic id, created_at, and updated_at fields.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )

    id: str = Field(default_factory=new_id, description="Unique identifier")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )
    updated_at: Optional[datetime] = Field(
        default=None, description="Last update timestamp"
    )

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, dt: Optional[datetime], _info: Any) -> Optional[str]:
        """Serialize datetime to ISO format."""
        return dt.isoformat() if dt else None


class MonotrackBaseModel(BaseModel):
    """Base model for non-persisted values (VCS records, workspace entries, config)."""

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )
