"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserResponse(BaseModel):
    """Public profile fields returned by the API."""

    id: str = Field(..., description="Stable profile identifier (UUID)")
    username: str
    display_name: str | None = None
    bio: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
