"""Text extraction with ordered strategy fallback."""

import time
from typing import List, Optional, Protocol, Sequence

from app.core.config import Settings
from app.core.exceptions import ExtractionFailed, StrategyError
from app.models.document_models import ExtractionAttempt, ExtractionResult
from app.services.extraction.runner import InlineRunner, ProcessRunner, Strategy
from app.services.extraction.strategies import (
    GeminiVisionStrategy,
    MistralOcrStrategy,
    PdfParseStrategy,
    StrategyOutput,
)
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class StrategyRunner(Protocol):
    async def run(self, strategy: Strategy, data: bytes) -> StrategyOutput: ...


class TextExtractionAdapter:
    """Produce plain text from PDF bytes.

    Strategies are tried in order: direct parse, OCR, then AI vision. The
    first one whose text reaches ``min_text_length`` wins. A strategy that
    raises, crashes or times out counts as a failed attempt and the next one
    is tried.
    """

    def __init__(
        self,
        strategies: Sequence[Strategy],
        runner: Optional[StrategyRunner] = None,
        min_text_length: int = 50,
    ):
        self.strategies = list(strategies)
        self.runner = runner or ProcessRunner()
        self.min_text_length = min_text_length

    @classmethod
    def from_settings(cls, settings: Settings) -> "TextExtractionAdapter":
        extraction = settings.extraction
        strategies = [
            PdfParseStrategy(),
            MistralOcrStrategy(
                api_key=settings.llm.mistral_api_key,
                api_url=settings.llm.mistral_ocr_url,
                model=settings.llm.mistral_ocr_model,
                timeout=extraction.timeout_seconds,
            ),
            GeminiVisionStrategy(
                api_key=settings.llm.gemini_api_key,
                model=settings.llm.gemini_vision_model,
                max_pages=extraction.ai_vision_max_pages,
                timeout=extraction.timeout_seconds,
            ),
        ]
        runner_cls = ProcessRunner if extraction.isolate_processes else InlineRunner
        return cls(strategies, runner_cls(timeout=extraction.timeout_seconds), extraction.min_text_length)

    async def extract(self, data: bytes) -> ExtractionResult:
        """Extract text from file bytes.

        Args:
            data: Raw PDF bytes

        Returns:
            ExtractionResult recording the method that succeeded and every attempt

        Raises:
            ExtractionFailed: If no strategy produced enough text
        """
        attempts: List[ExtractionAttempt] = []

        for strategy in self.strategies:
            method = strategy.method
            started = time.perf_counter()
            try:
                output = await self.runner.run(strategy, data)
            except StrategyError as e:
                elapsed_ms = int((time.perf_counter() - started) * 1000)
                LOGGER.warning(
                    f"Extraction strategy {method.value} failed: {e}",
                    extra={"method": method.value, "elapsed_ms": elapsed_ms},
                )
                attempts.append(ExtractionAttempt(method=method, succeeded=False, error=str(e), elapsed_ms=elapsed_ms))
                continue

            elapsed_ms = int((time.perf_counter() - started) * 1000)
            text = (output.text or "").strip()
            if len(text) < self.min_text_length:
                LOGGER.info(
                    f"Strategy {method.value} yielded {len(text)} chars, below {self.min_text_length}",
                    extra={"method": method.value},
                )
                attempts.append(
                    ExtractionAttempt(
                        method=method,
                        succeeded=False,
                        text_length=len(text),
                        error=f"text below minimum length ({len(text)} < {self.min_text_length})",
                        elapsed_ms=elapsed_ms,
                    )
                )
                continue

            attempts.append(
                ExtractionAttempt(method=method, succeeded=True, text_length=len(text), elapsed_ms=elapsed_ms)
            )
            LOGGER.info(
                f"Extracted {len(text)} chars with {method.value}",
                extra={"method": method.value, "page_count": output.page_count},
            )
            return ExtractionResult(
                text=text,
                page_count=output.page_count,
                method=method,
                char_count=len(text),
                attempts=attempts,
            )

        raise ExtractionFailed([attempt.model_dump(mode="json") for attempt in attempts])
