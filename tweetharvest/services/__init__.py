"""Classification services: AI analysis, the ai_draw sink and the classifiers."""

from tweetharvest.services.ai_draw_sink import AiDrawSink
from tweetharvest.services.ai_service import AIService
from tweetharvest.services.content_classifier import (
    MEDIA_RULES,
    TOPIC_RULES,
    ClassificationResult,
    Classifier,
    ContentClassifier,
    Rule,
    RuleClassifier,
)

__all__ = [
    "AIService",
    "AiDrawSink",
    "ClassificationResult",
    "Classifier",
    "ContentClassifier",
    "MEDIA_RULES",
    "Rule",
    "RuleClassifier",
    "TOPIC_RULES",
]
