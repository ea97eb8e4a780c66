"""Tests for the sliding-window chunker and token estimates."""

import pytest

from app.services.chunking import Chunker, TokenCounter


class TestTokenCounter:
    def test_empty_text(self):
        assert TokenCounter().count_tokens("") == 0

    def test_estimate_is_positive(self):
        assert TokenCounter().count_tokens("Junta ordinaria de propietarios") > 0


class TestChunker:
    @pytest.fixture
    def long_text(self):
        paragraph = "La comunidad aprueba la reparación de la fachada y el presupuesto anual. " * 6
        return "\n\n".join(paragraph for _ in range(8))

    def test_empty_text_yields_no_chunks(self):
        assert Chunker().chunk("   ") == []

    def test_short_text_is_single_chunk(self):
        chunks = Chunker(min_chars=50).chunk("Aviso breve.")
        assert len(chunks) == 1
        assert chunks[0].content == "Aviso breve."

    def test_chunks_respect_window_and_overlap(self, long_text):
        chunker = Chunker(max_tokens=100, overlap_tokens=10, min_chars=1)
        chunks = chunker.chunk(long_text)

        assert len(chunks) > 1
        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
        for chunk in chunks:
            assert chunk.end_char - chunk.start_char <= chunker.max_chars
        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_char < previous.end_char
            assert current.start_char > previous.start_char
        assert chunks[-1].end_char == len(long_text)

    def test_breaks_on_paragraphs_when_possible(self, long_text):
        chunks = Chunker(max_tokens=150, overlap_tokens=0).chunk(long_text)
        assert long_text[chunks[0].end_char - 2:chunks[0].end_char] == "\n\n"

    @pytest.mark.parametrize("max_tokens,overlap", [(0, 0), (100, 100), (100, -1)])
    def test_invalid_arguments(self, max_tokens, overlap):
        with pytest.raises(ValueError):
            Chunker(max_tokens=max_tokens, overlap_tokens=overlap)
