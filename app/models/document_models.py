"""Data models for document extraction, classification and chunking."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    """Closed set of document categories handled by the pipeline."""

    ACTA = "acta"
    FACTURA = "factura"
    CONTRATO = "contrato"
    COMUNICADO = "comunicado"
    PRESUPUESTO = "presupuesto"
    ALBARAN = "albaran"
    ESCRITURA = "escritura"
    UNCLASSIFIED = "unclassified"

    @classmethod
    def labels(cls) -> List[str]:
        """Labels a classifier may assign, excluding the default."""
        return [member.value for member in cls if member is not cls.UNCLASSIFIED]


class ExtractionMethod(str, Enum):
    """Text extraction strategies, in fallback order."""

    PDF_PARSE = "pdf-parse"
    OCR = "ocr"
    AI_VISION = "ai-vision"


class ClassificationMethod(str, Enum):
    RULE = "rule"
    AI = "ai"


class ExtractionAttempt(BaseModel):
    """Outcome of one strategy attempt."""

    method: ExtractionMethod
    succeeded: bool
    text_length: int = 0
    error: Optional[str] = None
    elapsed_ms: int = 0


class ExtractionResult(BaseModel):
    """Text produced by the first strategy that yielded enough text."""

    text: str
    page_count: int = Field(0, ge=0)
    method: ExtractionMethod
    char_count: int = Field(0, ge=0)
    attempts: List[ExtractionAttempt] = Field(default_factory=list)


class ClassificationResult(BaseModel):
    """Document type assigned by the classifier."""

    type: DocumentType
    confidence: float = Field(..., ge=0.0, le=1.0)
    method: ClassificationMethod
    reasoning: Optional[str] = None
    fallback_used: bool = False


class Chunk(BaseModel):
    """One overlapping text segment for retrieval indexing."""

    index: int = Field(..., ge=0)
    content: str
    token_count: int = Field(..., ge=0)
    start_char: int = Field(..., ge=0)
    end_char: int = Field(..., ge=0)
