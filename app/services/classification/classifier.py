"""Document classifier combining keyword rules with an AI fallback."""

from typing import List, Optional

from app.models.document_models import ClassificationMethod, ClassificationResult, DocumentType
from app.services.classification.ai_classifier import AIClassifier
from app.services.classification.constants import (
    AI_ACCEPT_THRESHOLD,
    FILENAME_ACCEPT_THRESHOLD,
    MIN_TEXT_FOR_ANALYSIS,
    NO_MATCH_CONFIDENCE,
    TEXT_ACCEPT_THRESHOLD,
)
from app.services.classification.rules import classify_by_filename, classify_by_text
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class DocumentClassifier:
    """Assign a document type from the closed label set.

    Order of evaluation:
    1. Filename keywords (accepted at confidence >= 0.9)
    2. Text keywords when the text is long enough (accepted at >= 0.8)
    3. The AI classifier when enabled and text is available
    4. The best heuristic result, or ``unclassified``, flagged as a fallback
    """

    def __init__(self, ai_classifier: Optional[AIClassifier] = None):
        self.ai_classifier = ai_classifier

    async def classify(self, filename: str, text: Optional[str] = None, use_ai: bool = True) -> ClassificationResult:
        """Classify a document.

        Args:
            filename: Original filename
            text: Extracted text, if any
            use_ai: Whether the AI classifier may be called

        Returns:
            ClassificationResult
        """
        candidates: List[ClassificationResult] = []

        by_name = classify_by_filename(filename)
        if by_name:
            if by_name.confidence >= FILENAME_ACCEPT_THRESHOLD:
                LOGGER.info(f"Classified {filename} as {by_name.type.value} from filename")
                return by_name
            candidates.append(by_name)

        if text and len(text) > MIN_TEXT_FOR_ANALYSIS:
            by_text = classify_by_text(text)
            if by_text:
                if by_text.confidence >= TEXT_ACCEPT_THRESHOLD:
                    LOGGER.info(f"Classified {filename} as {by_text.type.value} from text keywords")
                    return by_text
                candidates.append(by_text)

        if use_ai and text and self.ai_classifier is not None:
            by_ai = await self.ai_classifier.classify(filename, text)
            if by_ai.fallback_used or by_ai.confidence >= AI_ACCEPT_THRESHOLD:
                LOGGER.info(
                    f"Classified {filename} as {by_ai.type.value} by AI",
                    extra={"confidence": by_ai.confidence, "fallback_used": by_ai.fallback_used},
                )
                return by_ai
            candidates.append(by_ai)

        if candidates:
            best = max(candidates, key=lambda result: result.confidence)
            return best.model_copy(update={"fallback_used": True})

        return ClassificationResult(
            type=DocumentType.UNCLASSIFIED,
            confidence=NO_MATCH_CONFIDENCE,
            method=ClassificationMethod.RULE,
            reasoning="No filename or text rule matched",
            fallback_used=True,
        )
