"""Timeline item normalizer.

Reads the two known raw response shapes (see ``models.py``) and turns an
item into the canonical TweetRecord. The direct shape is tried first, then
the legacy-wrapped shape; the first shape that parses supplies every field.

Items missing a screen name, an id, or a parseable creation timestamp yield
None. That is a normal outcome: the caller skips the item.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from tweetharvest.collectors.normalization.pipeline import NormalizationPipeline
from tweetharvest.collectors.normalization.schema import (
    Author,
    ImageRef,
    Media,
    SourceShape,
    TweetFlags,
    TweetRecord,
)
from tweetharvest.collectors.twitter.models import (
    DirectItem,
    LegacyWrappedItem,
    RawMedia,
    RawUser,
)

logger = structlog.get_logger(__name__)

RETWEET_PREFIX = "RT @"
TWEET_URL_TEMPLATE = "https://x.com/{screen_name}/status/{tweet_id}"
TWITTER_DATE_FORMAT = "%a %b %d %H:%M:%S %z %Y"

VIDEO_MEDIA_TYPES = frozenset({"video", "animated_gif"})


@dataclass
class ExtractedTweet:
    """Fields read from one raw shape, before validation into a TweetRecord."""

    shape: SourceShape
    tweet_id: str | None
    text: str
    created_at: str | None
    retweet_flag: bool
    media: list[RawMedia] = field(default_factory=list)
    user: RawUser | None = None
    core_rest_id: str | None = None
    promoted: bool = False

    @property
    def screen_name(self) -> str | None:
        if self.user and self.user.legacy:
            return self.user.legacy.screen_name or None
        return None


# =============================================================================
# Per-shape extractors
# =============================================================================


def extract_direct(raw: dict[str, Any]) -> Optional[ExtractedTweet]:
    """Extract fields from a direct-shape item, or None if it is not one."""
    try:
        item = DirectItem.model_validate(raw)
    except ValidationError:
        return None

    legacy = item.raw.result.legacy
    if not legacy.id_str:
        # fall through to the legacy-wrapped paths
        return None
    core = item.raw.result.core
    core_rest_id = None
    if core and core.user_results and core.user_results.result:
        core_rest_id = core.user_results.result.rest_id

    return ExtractedTweet(
        shape=SourceShape.DIRECT,
        tweet_id=legacy.id_str,
        text=legacy.full_text or "",
        created_at=legacy.created_at,
        retweet_flag=bool(legacy.is_retweet),
        media=legacy.extended_entities.media if legacy.extended_entities else [],
        user=item.user,
        core_rest_id=core_rest_id,
        promoted=bool(item.promoted_metadata),
    )


def extract_legacy_wrapped(raw: dict[str, Any]) -> Optional[ExtractedTweet]:
    """Extract fields from a legacy-wrapped item, or None if it is not one."""
    try:
        item = LegacyWrappedItem.model_validate(raw)
    except ValidationError:
        return None

    legacy = item.tweet.legacy
    return ExtractedTweet(
        shape=SourceShape.LEGACY_WRAPPED,
        tweet_id=item.tweet.rest_id or legacy.id_str or None,
        text=legacy.full_text or "",
        created_at=legacy.created_at,
        retweet_flag=False,
        media=legacy.extended_entities.media if legacy.extended_entities else [],
        user=item.user,
        promoted=bool(item.promoted_metadata),
    )


def build_pipeline() -> NormalizationPipeline[ExtractedTweet]:
    """Pipeline trying the direct shape first, then the legacy-wrapped shape."""
    pipeline: NormalizationPipeline[ExtractedTweet] = NormalizationPipeline()
    pipeline.register_extractor(SourceShape.DIRECT, extract_direct)
    pipeline.register_extractor(SourceShape.LEGACY_WRAPPED, extract_legacy_wrapped)
    return pipeline


_pipeline = build_pipeline()


def extract(raw: dict[str, Any]) -> Optional[ExtractedTweet]:
    return _pipeline.extract(raw)


# =============================================================================
# Field helpers
# =============================================================================


def parse_created_at(value: str | None) -> Optional[datetime]:
    """Parse an upstream timestamp.

    Accepts the classic ``Wed Oct 10 20:19:24 +0000 2018`` format and ISO 8601.
    Naive ISO timestamps are taken as UTC.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, TWITTER_DATE_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _images(media: list[RawMedia]) -> list[ImageRef]:
    return [
        ImageRef(url=m.media_url_https, alt_text=m.ext_alt_text or None)
        for m in media
        if m.type == "photo"
    ]


def _best_video_url(media: RawMedia) -> Optional[str]:
    """Highest-bitrate ``video/*`` variant of a video or GIF attachment."""
    if not media.video_info:
        return None
    candidates = [
        v
        for v in media.video_info.variants
        if v.url and v.content_type and v.content_type.startswith("video/")
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda v: v.bitrate or 0).url


def _videos(media: list[RawMedia]) -> list[str]:
    urls = (_best_video_url(m) for m in media if m.type in VIDEO_MEDIA_TYPES)
    return [url for url in urls if url]


# =============================================================================
# Public API
# =============================================================================


def resolve_identity(raw: dict[str, Any]) -> Optional[tuple[str, str]]:
    """Return ``(screen_name, tweet_id)`` or None if either is missing."""
    fields = extract(raw)
    if fields is None or not fields.screen_name or not fields.tweet_id:
        return None
    return fields.screen_name, fields.tweet_id


def tweet_id_of(raw: dict[str, Any]) -> Optional[str]:
    fields = extract(raw)
    return fields.tweet_id if fields else None


def is_promoted(raw: dict[str, Any]) -> bool:
    return bool(raw.get("promotedMetadata"))


def is_retweet(raw: dict[str, Any]) -> bool:
    """True if the text starts with ``RT @`` or the upstream flag is set.

    A quoted tweet whose own text starts with ``RT @`` is also reported as a
    retweet; this matches upstream behavior and is a known false positive.
    """
    fields = extract(raw)
    if fields is None:
        return False
    return fields.text.startswith(RETWEET_PREFIX) or fields.retweet_flag


def extract_created_at(raw: dict[str, Any]) -> Optional[datetime]:
    fields = extract(raw)
    return parse_created_at(fields.created_at) if fields else None


def normalize(raw: dict[str, Any], subject_rest_id: str | None = None) -> Optional[TweetRecord]:
    """Build a TweetRecord from a raw timeline item.

    Args:
        raw: Raw item from a timeline page.
        subject_rest_id: Rest id of the subject whose timeline is being read.
            Takes precedence over ids found inside the item.

    Returns:
        The record, or None when the item lacks a screen name, an id or a
        valid creation timestamp.
    """
    fields = extract(raw)
    if fields is None:
        logger.debug("tweet_unrecognized_shape")
        return None

    screen_name = fields.screen_name
    if not screen_name or not fields.tweet_id:
        logger.info(
            "tweet_missing_identity",
            shape=fields.shape.value,
            screen_name=screen_name,
            tweet_id=fields.tweet_id,
        )
        return None

    created_at = parse_created_at(fields.created_at)
    if created_at is None:
        logger.info("tweet_invalid_created_at", tweet_id=fields.tweet_id, value=fields.created_at)
        return None

    user_legacy = fields.user.legacy if fields.user else None
    author = Author(
        rest_id=subject_rest_id
        or (fields.user.rest_id if fields.user else None)
        or fields.core_rest_id
        or "",
        screen_name=screen_name,
        name=user_legacy.name if user_legacy else None,
        avatar_url=user_legacy.profile_image_url_https if user_legacy else None,
        description=user_legacy.description if user_legacy else None,
        followers_count=user_legacy.followers_count if user_legacy else None,
        friends_count=user_legacy.friends_count if user_legacy else None,
        location=user_legacy.location if user_legacy else None,
    )

    return TweetRecord(
        id=fields.tweet_id,
        url=TWEET_URL_TEMPLATE.format(screen_name=screen_name, tweet_id=fields.tweet_id),
        author=author,
        text=fields.text,
        created_at=created_at,
        media=Media(images=_images(fields.media), videos=_videos(fields.media)),
        flags=TweetFlags(
            is_retweet=fields.text.startswith(RETWEET_PREFIX) or fields.retweet_flag,
            is_promoted=fields.promoted,
        ),
        source_shape=fields.shape,
    )
