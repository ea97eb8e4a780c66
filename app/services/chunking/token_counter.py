"""Token counting utilities for chunking and cost estimates."""

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class TokenCounter:
    """Heuristic token counter.

    Approximates tokenizer output without a tokenizer dependency, which is
    enough for sizing chunks and estimating AI usage. The estimate averages a
    character-based count (4 chars per token) and a word-based count
    (1.3 tokens per word).
    """

    CHARS_PER_TOKEN = 4.0
    TOKENS_PER_WORD = 1.3

    def count_tokens(self, text: str) -> int:
        """Count approximate tokens in text.

        Args:
            text: Text to count tokens for

        Returns:
            int: Estimated token count

        Example:
            >>> TokenCounter().count_tokens("Junta ordinaria de propietarios")
            6
        """
        if not text:
            return 0
        char_estimate = len(text) / self.CHARS_PER_TOKEN
        word_estimate = len(text.split()) * self.TOKENS_PER_WORD
        return int((char_estimate + word_estimate) / 2)

    def chars_for_tokens(self, tokens: int) -> int:
        """Approximate character span covering a token budget."""
        return max(1, int(tokens * self.CHARS_PER_TOKEN))

    def can_fit_in_limit(self, text: str, limit: int) -> bool:
        return self.count_tokens(text) <= limit
