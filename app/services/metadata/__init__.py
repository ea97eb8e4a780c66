"""Metadata extraction with stored prompt templates."""

from app.services.metadata.field_extractor import FieldExtraction, FieldExtractor

__all__ = ["FieldExtraction", "FieldExtractor"]
