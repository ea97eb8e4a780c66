"""LLM classifier used when the keyword rules are inconclusive."""

from typing import Optional

from app.core.exceptions import ParseFailed
from app.core.llm_client import GeminiClient
from app.models.document_models import ClassificationMethod, ClassificationResult, DocumentType
from app.utils.json_parser import parse_json_response
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class AIClassifier:
    """Single-call Gemini classifier with a closed label set."""

    CLASSIFICATION_PROMPT = """You classify documents of a residential community (comunidad de propietarios).

Choose EXACTLY ONE type from this list:
{labels}

FILENAME: {filename}
TEXT LENGTH: {text_length} characters
TEXT PREVIEW:
{text_preview}

RETURN JSON ONLY:
{{
  "document_type": "...",
  "confidence": 0.0-1.0,
  "reasoning": "brief explanation"
}}
"""

    def __init__(self, client: GeminiClient, preview_chars: int = 2000):
        self.client = client
        self.preview_chars = preview_chars

    def build_prompt(self, filename: str, text: str) -> str:
        return self.CLASSIFICATION_PROMPT.format(
            labels=", ".join(DocumentType.labels()),
            filename=filename,
            text_length=len(text),
            text_preview=text[: self.preview_chars],
        )

    async def classify(self, filename: str, text: str) -> ClassificationResult:
        """Classify with one AI call.

        Transport errors from the client are not caught. An answer that is
        unparseable or outside the label set yields ``unclassified`` with
        ``fallback_used`` set.
        """
        response = await self.client.generate_content(
            contents=self.build_prompt(filename, text),
            generation_config={"temperature": 0.0, "response_mime_type": "application/json"},
        )

        try:
            data = parse_json_response(response)
        except ParseFailed:
            return self._unclassified("AI response was not valid JSON")

        label = str(data.get("document_type", "")).strip().lower() if isinstance(data, dict) else ""
        if label not in DocumentType.labels():
            LOGGER.warning(f"AI classifier returned label outside the allowed set: {label!r}")
            return self._unclassified(f"AI returned unsupported label '{label}'")

        return ClassificationResult(
            type=DocumentType(label),
            confidence=_clamp(data.get("confidence")),
            method=ClassificationMethod.AI,
            reasoning=data.get("reasoning"),
        )

    @staticmethod
    def _unclassified(reason: str) -> ClassificationResult:
        return ClassificationResult(
            type=DocumentType.UNCLASSIFIED,
            confidence=0.0,
            method=ClassificationMethod.AI,
            reasoning=reason,
            fallback_used=True,
        )


def _clamp(value: Optional[object]) -> float:
    try:
        return min(1.0, max(0.0, float(value)))
    except (TypeError, ValueError):
        return 0.0
