"""Typed models of the raw timeline API responses.

A timeline item arrives in one of two shapes:

- direct: tweet fields under ``raw.result.legacy`` (camelCase ``idStr``)
- legacy-wrapped: tweet fields under ``tweet.legacy`` with the id in
  ``tweet.rest_id`` or ``tweet.legacy.id_str``

Both carry the author under a top-level ``user`` block and may carry
``promotedMetadata``. Unknown fields are ignored.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _RawModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


class VideoVariant(_RawModel):
    url: str | None = None
    content_type: str | None = Field(None, alias="contentType")
    bitrate: int | None = None


class VideoInfo(_RawModel):
    variants: list[VideoVariant] = Field(default_factory=list)


class RawMedia(_RawModel):
    """One entry of ``extendedEntities.media``."""

    type: str | None = None
    media_url_https: str | None = Field(None, alias="mediaUrlHttps")
    ext_alt_text: str | None = Field(None, alias="extAltText")
    video_info: VideoInfo | None = Field(None, alias="videoInfo")


class ExtendedEntities(_RawModel):
    media: list[RawMedia] = Field(default_factory=list)


class UserLegacy(_RawModel):
    screen_name: str | None = Field(None, alias="screenName")
    name: str | None = None
    profile_image_url_https: str | None = Field(None, alias="profileImageUrlHttps")
    description: str | None = None
    followers_count: int | None = Field(None, alias="followersCount")
    friends_count: int | None = Field(None, alias="friendsCount")
    statuses_count: int | None = Field(None, alias="statusesCount")
    location: str | None = None


class RawUser(_RawModel):
    """Author block shared by both shapes and by the user lookup endpoint."""

    rest_id: str | None = Field(None, validation_alias=AliasChoices("rest_id", "restId"))
    legacy: UserLegacy | None = None


# =============================================================================
# Direct shape
# =============================================================================


class DirectTweetLegacy(_RawModel):
    id_str: str | None = Field(None, alias="idStr")
    full_text: str | None = Field(None, alias="fullText")
    created_at: str | None = Field(None, alias="createdAt")
    is_retweet: bool | None = Field(None, alias="isRetweet")
    extended_entities: ExtendedEntities | None = Field(None, alias="extendedEntities")


class DirectUserResult(_RawModel):
    rest_id: str | None = None


class DirectUserResults(_RawModel):
    result: DirectUserResult | None = None


class DirectCore(_RawModel):
    user_results: DirectUserResults | None = None


class DirectResult(_RawModel):
    legacy: DirectTweetLegacy
    core: DirectCore | None = None


class DirectRaw(_RawModel):
    result: DirectResult


class DirectItem(_RawModel):
    raw: DirectRaw
    user: RawUser | None = None
    promoted_metadata: Any = Field(None, alias="promotedMetadata")


# =============================================================================
# Legacy-wrapped shape
# =============================================================================


class WrappedTweetLegacy(_RawModel):
    id_str: str | None = None
    full_text: str | None = Field(None, alias="fullText")
    created_at: str | None = Field(None, alias="createdAt")
    extended_entities: ExtendedEntities | None = Field(None, alias="extendedEntities")


class WrappedTweet(_RawModel):
    rest_id: str | None = None
    legacy: WrappedTweetLegacy


class LegacyWrappedItem(_RawModel):
    tweet: WrappedTweet
    user: RawUser | None = None
    promoted_metadata: Any = Field(None, alias="promotedMetadata")


RawTimelineItem = DirectItem | LegacyWrappedItem
