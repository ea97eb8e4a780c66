"""Chunking services for retrieval indexing."""

from app.services.chunking.chunker import Chunker
from app.services.chunking.token_counter import TokenCounter

__all__ = ["Chunker", "TokenCounter"]
