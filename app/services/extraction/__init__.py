"""Text extraction from uploaded PDFs."""

from app.services.extraction.adapter import TextExtractionAdapter

__all__ = ["TextExtractionAdapter"]
