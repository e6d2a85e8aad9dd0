"""Canonical schema for ingested timeline items.

Provides the ContentType enum and the TweetRecord Pydantic model that both
raw response shapes are normalized into.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ContentType(str, Enum):
    """Content type assigned by the classifier."""

    POST = "post"
    POST_WITH_MEDIA = "post_with_media"
    POST_WITH_VIDEO = "post_with_video"
    AI_DRAW = "ai_draw"
    ANNOUNCEMENT = "announcement"
    AI_RELATED = "ai_related"
    REGULAR = "regular"
    UNKNOWN = "unknown"


class SourceShape(str, Enum):
    """Raw response shape a record was extracted from."""

    DIRECT = "direct"
    LEGACY_WRAPPED = "legacy_wrapped"


class Author(BaseModel):
    """Author of a timeline item."""

    rest_id: str = ""
    screen_name: str
    name: str | None = None
    avatar_url: str | None = None
    description: str | None = None
    followers_count: int | None = None
    friends_count: int | None = None
    location: str | None = None


class ImageRef(BaseModel):
    """Photo attachment."""

    url: str | None = None
    alt_text: str | None = None


class Media(BaseModel):
    """Media attachments; both lists are always present."""

    images: list[ImageRef] = Field(default_factory=list)
    videos: list[str] = Field(default_factory=list)


class TweetFlags(BaseModel):
    is_retweet: bool = False
    is_promoted: bool = False


class TweetRecord(BaseModel):
    """Canonical, schema-independent representation of one timeline item."""

    id: str = Field(..., min_length=1, description="Upstream tweet id")
    url: str = Field(..., min_length=1, description="https://x.com/{handle}/status/{id}")
    author: Author
    text: str = ""
    created_at: datetime
    media: Media = Field(default_factory=Media)
    content_type: ContentType = ContentType.UNKNOWN
    flags: TweetFlags = Field(default_factory=TweetFlags)

    # Provenance
    source_shape: SourceShape

    model_config = {"extra": "forbid", "validate_assignment": True}

    @field_validator("created_at")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")
        return value

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict of the full record (used by the ai_draw sink and debug dumps)."""
        return self.model_dump(mode="json")

    def to_row(self) -> dict[str, Any]:
        """Row for the tweets table."""
        return {
            "tweet_id": self.id,
            "user_id": self.author.rest_id,
            "tweet_url": self.url,
            "full_text": self.text,
            "created_at": self.created_at.isoformat(),
            "images": [{"url": img.url, "alt": img.alt_text} for img in self.media.images],
            "videos": list(self.media.videos),
            "content_type": self.content_type.value,
        }
