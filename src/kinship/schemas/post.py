"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    body: str = Field(..., min_length=1, max_length=5000, description="Post text")
    location: str | None = Field(None, description="Free-form place name")
    image_url: str | None = Field(None, description="Already-uploaded image URL")


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: int
    author_id: str
    body: str
    location: str | None = None
    image_url: str | None = None
    created_at: datetime
    like_count: int
    comment_count: int

    model_config = ConfigDict(from_attributes=True)
