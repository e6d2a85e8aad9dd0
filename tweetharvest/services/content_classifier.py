"""
Content-type classification for normalized tweets.

Two classifiers share one interface, ``async classify(record) -> ClassificationResult``:

- ContentClassifier: heuristic gate, then the AI service. Records labelled
  ``ai_draw`` are submitted to the ai_draw sink and are only persisted if the
  sink accepts them.
- RuleClassifier: an ordered table of ``(predicate, content_type)`` rules,
  first match wins. Used where no AI call is wanted (full-history mode).

Both assign ``record.content_type``; nothing else changes it after
normalization.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Sequence

import structlog

from tweetharvest.collectors.normalization.schema import ContentType, TweetRecord
from tweetharvest.core.exceptions import ClassificationError

logger = structlog.get_logger(__name__)


# =============================================================================
# Constants
# =============================================================================

# The gate needs at least this many images with a URL and with alt text.
MIN_DESCRIBED_IMAGES = 2

# AI labels outside ContentType that map onto one of its members.
LABEL_ALIASES = {"article": ContentType.REGULAR}

ANNOUNCEMENT_KEYWORDS = ("announce", "announcing", "launch", "released", "introducing")
AI_KEYWORDS = ("ai", "gpt", "llm", "midjourney", "stable diffusion", "prompt")


# =============================================================================
# Results and collaborators
# =============================================================================


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one record.

    ``persist`` is False when an ai_draw record was refused by the sink.
    """

    content_type: ContentType
    persist: bool = True


class ContentAnalyzer(Protocol):
    async def content_type_analysis(self, content: str) -> dict[str, Any]: ...


class RecordSink(Protocol):
    async def submit(self, record: TweetRecord) -> bool: ...


class Classifier(Protocol):
    async def classify(self, record: TweetRecord) -> ClassificationResult: ...


# =============================================================================
# Prompt and heuristic gate
# =============================================================================


def build_prompt(record: TweetRecord) -> str:
    """Text followed by an enumerated list of the record's images."""
    parts = [f"\n\n{record.text}", "\n\nImages:\n\n"]
    for index, image in enumerate(record.media.images, start=1):
        parts.append(f"Image {index}:\nURL: {image.url or ''}\nAlt: {image.alt_text or ''}\n")
    return "".join(parts)


def passes_heuristic_gate(record: TweetRecord) -> bool:
    """True if the record has enough described images to be worth an AI call."""
    with_url = sum(1 for image in record.media.images if image.url)
    with_alt = sum(1 for image in record.media.images if image.alt_text)
    return with_url >= MIN_DESCRIBED_IMAGES and with_alt >= MIN_DESCRIBED_IMAGES


def parse_label(result: dict[str, Any]) -> ContentType:
    """Map an AI result onto ContentType.

    Raises:
        ClassificationError: If the label is missing or not recognized.
    """
    label = result.get("content_type")
    if not isinstance(label, str) or not label:
        raise ClassificationError("AI result has no content_type", {"result": result})

    label = label.strip().lower()
    if label in LABEL_ALIASES:
        return LABEL_ALIASES[label]
    try:
        return ContentType(label)
    except ValueError as e:
        raise ClassificationError(f"Unrecognized content type: {label}", {"result": result}) from e


# =============================================================================
# AI-backed classifier
# =============================================================================


class ContentClassifier:
    """Heuristic gate plus AI classification, with the ai_draw side effect.

    Never raises: any AI or parse failure yields ``unknown``, sink failures yield
    ``persist=False``.
    """

    def __init__(self, analyzer: ContentAnalyzer, sink: RecordSink):
        self.analyzer = analyzer
        self.sink = sink

    async def _label(self, record: TweetRecord) -> ContentType:
        if not passes_heuristic_gate(record):
            return ContentType.POST

        try:
            result = await self.analyzer.content_type_analysis(build_prompt(record))
            content_type = parse_label(result)
        except ClassificationError as e:
            logger.warning("classification_failed", tweet_id=record.id, error=e.message)
            return ContentType.UNKNOWN
        except Exception as e:
            logger.warning(
                "classification_failed",
                tweet_id=record.id,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            return ContentType.UNKNOWN

        logger.info(
            "classification_completed",
            tweet_id=record.id,
            content_type=content_type.value,
            analysis_reason=result.get("analysis_reason", ""),
            content_type_score=result.get("content_type_score", 0),
        )
        return content_type

    async def classify(self, record: TweetRecord) -> ClassificationResult:
        content_type = await self._label(record)
        record.content_type = content_type

        if content_type is ContentType.AI_DRAW:
            accepted = await self.sink.submit(record)
            if not accepted:
                logger.info("ai_draw_record_dropped", tweet_id=record.id)
            return ClassificationResult(content_type, persist=accepted)

        return ClassificationResult(content_type)


# =============================================================================
# Rule table
# =============================================================================


@dataclass(frozen=True)
class Rule:
    """One row of the rule table."""

    name: str
    predicate: Callable[[TweetRecord], bool]
    content_type: ContentType


def _has_keyword(keywords: Sequence[str]) -> Callable[[TweetRecord], bool]:
    pattern = re.compile(r"\b(?:" + "|".join(re.escape(kw) for kw in keywords) + r")\b", re.I)

    def predicate(record: TweetRecord) -> bool:
        return pattern.search(record.text) is not None

    return predicate


MEDIA_RULES: tuple[Rule, ...] = (
    Rule("images", lambda r: bool(r.media.images), ContentType.POST_WITH_MEDIA),
    Rule("videos", lambda r: bool(r.media.videos), ContentType.POST_WITH_VIDEO),
    Rule("text", lambda r: True, ContentType.POST),
)

TOPIC_RULES: tuple[Rule, ...] = (
    Rule("announcement", _has_keyword(ANNOUNCEMENT_KEYWORDS), ContentType.ANNOUNCEMENT),
    Rule("ai_related", _has_keyword(AI_KEYWORDS), ContentType.AI_RELATED),
)


class RuleClassifier:
    """Local classifier over an ordered rule table.

    Example:
        classifier = RuleClassifier(TOPIC_RULES + MEDIA_RULES)
        result = await classifier.classify(record)
    """

    def __init__(
        self,
        rules: Sequence[Rule] = MEDIA_RULES,
        default: ContentType = ContentType.POST,
    ):
        self.rules = tuple(rules)
        self.default = default

    def match(self, record: TweetRecord) -> Optional[Rule]:
        for rule in self.rules:
            if rule.predicate(record):
                return rule
        return None

    async def classify(self, record: TweetRecord) -> ClassificationResult:
        rule = self.match(record)
        record.content_type = rule.content_type if rule else self.default
        logger.debug(
            "rule_classified",
            tweet_id=record.id,
            rule=rule.name if rule else None,
            content_type=record.content_type.value,
        )
        return ClassificationResult(record.content_type)
