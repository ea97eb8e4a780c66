"""Classification constants and configuration.

This module defines the filename and text keyword tables and the confidence
thresholds used by the document classifier.
"""

from app.models.document_models import DocumentType

# Filename keyword -> confidence of a match
FILENAME_KEYWORDS = {
    DocumentType.ACTA: 0.95,
    DocumentType.FACTURA: 0.95,
    DocumentType.CONTRATO: 0.95,
    DocumentType.COMUNICADO: 0.95,
    DocumentType.PRESUPUESTO: 0.9,
    DocumentType.ALBARAN: 0.9,
    DocumentType.ESCRITURA: 0.9,
}

# Text keywords; strong matches weigh 3, medium matches weigh 1
TEXT_KEYWORDS = {
    DocumentType.ACTA: {
        "strong": ["junta", "reunión", "presidente", "secretario", "propietarios", "acuerdos", "orden del día"],
        "medium": ["asamblea", "convocatoria", "administrador", "comunidad"],
    },
    DocumentType.FACTURA: {
        "strong": ["factura", "importe", "iva", "subtotal", "proveedor", "cliente"],
        "medium": ["precio", "cantidad", "concepto", "total"],
    },
    DocumentType.CONTRATO: {
        "strong": ["contrato", "partes", "cláusulas", "servicios", "contratante"],
        "medium": ["obligaciones", "condiciones", "duración", "precio"],
    },
    DocumentType.COMUNICADO: {
        "strong": ["comunicado", "información", "aviso", "notificación"],
        "medium": ["atentamente", "administración", "vecinos", "propietarios"],
    },
}

STRONG_WEIGHT = 3
MEDIUM_WEIGHT = 1
SCORE_TO_CONFIDENCE = 0.1
MAX_TEXT_CONFIDENCE = 0.95

FILENAME_ACCEPT_THRESHOLD = 0.9
TEXT_ACCEPT_THRESHOLD = 0.8
AI_ACCEPT_THRESHOLD = 0.7

MIN_TEXT_FOR_ANALYSIS = 100
NO_MATCH_CONFIDENCE = 0.3
