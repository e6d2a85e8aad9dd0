"""Normalization infrastructure for timeline items.

Provides the canonical TweetRecord schema and the ordered extraction
pipeline used to read the known raw response shapes.
"""

from tweetharvest.collectors.normalization.schema import (
    Author,
    ContentType,
    ImageRef,
    Media,
    SourceShape,
    TweetFlags,
    TweetRecord,
)
from tweetharvest.collectors.normalization.pipeline import NormalizationPipeline

__all__ = [
    "Author",
    "ContentType",
    "ImageRef",
    "Media",
    "SourceShape",
    "TweetFlags",
    "TweetRecord",
    "NormalizationPipeline",
]
