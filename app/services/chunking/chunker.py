"""Split extracted text into overlapping segments for retrieval indexing."""

from typing import List, Optional

from app.models.document_models import Chunk
from app.services.chunking.token_counter import TokenCounter
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Preferred break points, strongest first
BREAK_MARKERS = ("\n\n", "\n", ". ", " ")


class Chunker:
    """Sliding-window chunker with token-bounded windows.

    Each window spans at most ``max_tokens`` (approximated in characters) and
    starts ``overlap_tokens`` before the previous window ended. Window ends
    are pulled back to the nearest paragraph, line, sentence or word break
    when one exists in the second half of the window.
    """

    def __init__(
        self,
        max_tokens: int = 500,
        overlap_tokens: int = 50,
        min_chars: int = 50,
        token_counter: Optional[TokenCounter] = None,
    ):
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        if not 0 <= overlap_tokens < max_tokens:
            raise ValueError("overlap_tokens must be in [0, max_tokens)")
        self.counter = token_counter or TokenCounter()
        self.max_chars = self.counter.chars_for_tokens(max_tokens)
        self.overlap_chars = self.counter.chars_for_tokens(overlap_tokens) if overlap_tokens else 0
        self.min_chars = min_chars

    def _find_break(self, text: str, start: int, end: int) -> int:
        if end >= len(text):
            return len(text)
        floor = start + (end - start) // 2
        for marker in BREAK_MARKERS:
            position = text.rfind(marker, floor, end)
            if position != -1:
                return position + len(marker)
        return end

    def chunk(self, text: str) -> List[Chunk]:
        """Split text into overlapping chunks.

        Args:
            text: Full extracted text

        Returns:
            Ordered chunks; segments shorter than min_chars are dropped
            unless they are the only segment
        """
        if not text or not text.strip():
            return []

        spans = []
        start = 0
        while start < len(text):
            end = self._find_break(text, start, start + self.max_chars)
            spans.append((start, end))
            if end >= len(text):
                break
            # Always advance, even when the overlap would swallow the window
            start = max(end - self.overlap_chars, start + 1)

        chunks: List[Chunk] = []
        for start, end in spans:
            content = text[start:end].strip()
            if not content:
                continue
            if len(content) < self.min_chars and len(spans) > 1:
                continue
            chunks.append(
                Chunk(
                    index=len(chunks),
                    content=content,
                    token_count=self.counter.count_tokens(content),
                    start_char=start,
                    end_char=end,
                )
            )

        LOGGER.debug(
            f"Split text into {len(chunks)} chunks",
            extra={"max_chars": self.max_chars, "overlap_chars": self.overlap_chars},
        )
        return chunks
