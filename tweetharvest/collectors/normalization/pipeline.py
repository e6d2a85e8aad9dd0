"""Ordered extraction pipeline for raw timeline items.

Holds one extractor per known raw response shape and applies them in
registration order. The first extractor that recognizes the item wins; the
results of different extractors are never merged.
"""

from typing import Any, Callable, Generic, Optional, TypeVar

from tweetharvest.collectors.normalization.schema import SourceShape

T = TypeVar("T")

Extractor = Callable[[dict[str, Any]], Optional[T]]


class NormalizationPipeline(Generic[T]):
    """Ordered fallback across raw response shapes.

    Example:
        pipeline = NormalizationPipeline()
        pipeline.register_extractor(SourceShape.DIRECT, extract_direct)
        pipeline.register_extractor(SourceShape.LEGACY_WRAPPED, extract_legacy_wrapped)
        fields = pipeline.extract(raw_item)
    """

    def __init__(self):
        """Initialize the pipeline with no extractors."""
        self._extractors: dict[SourceShape, Extractor[T]] = {}

    def register_extractor(self, shape: SourceShape, extractor: Extractor[T]) -> None:
        """Register an extractor for a shape.

        Extractors are tried in registration order. Re-registering a shape
        replaces its extractor but keeps its original position.

        Args:
            shape: Shape the extractor understands.
            extractor: Callable returning extracted fields, or None when the
                item is not of this shape.
        """
        self._extractors[shape] = extractor

    def extract(self, raw: dict[str, Any]) -> Optional[T]:
        """Return the first non-empty extraction result, or None.

        Args:
            raw: Raw timeline item.
        """
        for extractor in self._extractors.values():
            result = extractor(raw)
            if result is not None:
                return result
        return None
