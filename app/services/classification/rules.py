"""Deterministic classification rules over filenames and text."""

import re
import unicodedata
from typing import Optional

from app.models.document_models import ClassificationMethod, ClassificationResult, DocumentType
from app.services.classification.constants import (
    FILENAME_KEYWORDS,
    MAX_TEXT_CONFIDENCE,
    MEDIUM_WEIGHT,
    SCORE_TO_CONFIDENCE,
    STRONG_WEIGHT,
    TEXT_KEYWORDS,
)


def _fold(value: str) -> str:
    """Lowercase and strip accents so 'Albarán' matches 'albaran'."""
    normalized = unicodedata.normalize("NFKD", value.lower())
    return "".join(char for char in normalized if not unicodedata.combining(char))


def classify_by_filename(filename: str) -> Optional[ClassificationResult]:
    """Match document-type keywords in a filename.

    A keyword matches at a word boundary or at the start of the name, so
    ``factura_2024.pdf`` and ``2024-factura.pdf`` match but ``prefactura``
    does not.
    """
    name = _fold(filename or "")
    # Treat separators as word boundaries
    name = re.sub(r"[_\-.]+", " ", name)

    for doc_type, confidence in FILENAME_KEYWORDS.items():
        pattern = rf"\b{doc_type.value}\b|^{doc_type.value}"
        if re.search(pattern, name):
            return ClassificationResult(
                type=doc_type,
                confidence=confidence,
                method=ClassificationMethod.RULE,
                reasoning=f"Filename contains '{doc_type.value}'",
            )
    return None


def score_text(text: str, doc_type: DocumentType) -> int:
    folded = _fold(text)
    keywords = TEXT_KEYWORDS[doc_type]
    score = 0
    for keyword in keywords["strong"]:
        score += len(re.findall(re.escape(_fold(keyword)), folded)) * STRONG_WEIGHT
    for keyword in keywords["medium"]:
        score += len(re.findall(re.escape(_fold(keyword)), folded)) * MEDIUM_WEIGHT
    return score


def classify_by_text(text: str) -> Optional[ClassificationResult]:
    """Score keyword frequencies and pick the best-scoring type."""
    best_type, best_score = None, 0
    for doc_type in TEXT_KEYWORDS:
        score = score_text(text, doc_type)
        if score > best_score:
            best_type, best_score = doc_type, score

    if best_type is None:
        return None

    return ClassificationResult(
        type=best_type,
        confidence=min(MAX_TEXT_CONFIDENCE, best_score * SCORE_TO_CONFIDENCE),
        method=ClassificationMethod.RULE,
        reasoning=f"Text analysis scored {best_score} for {best_type.value}",
    )
