"""Document classification."""

from app.services.classification.ai_classifier import AIClassifier
from app.services.classification.classifier import DocumentClassifier

__all__ = ["AIClassifier", "DocumentClassifier"]
