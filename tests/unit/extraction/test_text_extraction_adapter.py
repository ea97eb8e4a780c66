"""Tests for the text extraction fallback chain."""

import pytest

from app.core.exceptions import ExtractionFailed, StrategyError
from app.models.document_models import ExtractionMethod
from app.services.extraction import TextExtractionAdapter
from app.services.extraction.runner import InlineRunner
from app.services.extraction.strategies import GeminiVisionStrategy, StrategyOutput

LONG_TEXT = "Acta de la junta ordinaria de propietarios celebrada en marzo. " * 3

class FakeStrategy:
    def __init__(self, method: ExtractionMethod, text: str = "", error: Exception = None):
        self.method = method
        self.text = text
        self.error = error
        self.calls = 0

    def __call__(self, data: bytes) -> StrategyOutput:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return StrategyOutput(text=self.text, page_count=2)

class TestTextExtractionAdapter:
    @pytest.fixture
    def runner(self):
        return InlineRunner(timeout=5)

    @pytest.mark.asyncio
    async def test_first_strategy_wins(self, runner):
        parse = FakeStrategy(ExtractionMethod.PDF_PARSE, LONG_TEXT)
        ocr = FakeStrategy(ExtractionMethod.OCR, LONG_TEXT)
        adapter = TextExtractionAdapter([parse, ocr], runner)

        result = await adapter.extract(b"%PDF-1.4")

        assert result.method == ExtractionMethod.PDF_PARSE
        assert result.char_count == len(LONG_TEXT.strip())
        assert result.page_count == 2
        assert ocr.calls == 0

    @pytest.mark.asyncio
    async def test_short_text_falls_back_to_next_strategy(self, runner):
        parse = FakeStrategy(ExtractionMethod.PDF_PARSE, "   ")
        ocr = FakeStrategy(ExtractionMethod.OCR, error=RuntimeError("ocr service down"))
        vision = FakeStrategy(ExtractionMethod.AI_VISION, LONG_TEXT)
        adapter = TextExtractionAdapter([parse, ocr, vision], runner)

        result = await adapter.extract(b"%PDF-1.4")

        assert result.method == ExtractionMethod.AI_VISION
        assert [attempt.method for attempt in result.attempts] == [
            ExtractionMethod.PDF_PARSE,
            ExtractionMethod.OCR,
            ExtractionMethod.AI_VISION,
        ]
        assert [attempt.succeeded for attempt in result.attempts] == [False, False, True]
        assert "ocr service down" in result.attempts[1].error

    @pytest.mark.asyncio
    async def test_all_strategies_fail(self, runner):
        adapter = TextExtractionAdapter(
            [
                FakeStrategy(ExtractionMethod.PDF_PARSE, "corto"),
                FakeStrategy(ExtractionMethod.OCR, error=StrategyError("timeout")),
            ],
            runner,
        )

        with pytest.raises(ExtractionFailed) as exc_info:
            await adapter.extract(b"%PDF-1.4")

        assert exc_info.value.attempted_methods == ["pdf-parse", "ocr"]

class TestGeminiVisionStrategy:
    def test_large_documents_require_manual_review(self, monkeypatch):
        monkeypatch.setattr("app.services.extraction.strategies.count_pdf_pages", lambda data: 12)
        strategy = GeminiVisionStrategy(api_key="key", max_pages=5)

        with pytest.raises(StrategyError, match="manual-review-required"):
            strategy(b"%PDF-1.4")

    def test_missing_api_key(self):
        with pytest.raises(StrategyError):
            GeminiVisionStrategy(api_key="")(b"%PDF-1.4")
