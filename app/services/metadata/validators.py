"""Per-type normalisation of extracted fields.

The model answers with loosely named keys (often Spanish). Each supported
type maps those keys onto a flat record with typed values: trimmed strings,
floats for amounts, ISO dates and lists. Unknown keys are dropped.
"""

import re
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.models.document_models import DocumentType

SPANISH_MONTHS = {
    "enero": 1, "febrero": 2, "marzo": 3, "abril": 4, "mayo": 5, "junio": 6,
    "julio": 7, "agosto": 8, "septiembre": 9, "setiembre": 9, "octubre": 10,
    "noviembre": 11, "diciembre": 12,
}

MEETING_TYPES = {"ordinaria", "extraordinaria"}


def to_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_amount(value: Any) -> Optional[float]:
    """Parse amounts such as ``1.234,56 €``, ``1234.56`` or ``1,234.56``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r"[^\d,.\-]", "", str(value))
    if not cleaned:
        return None
    if "," in cleaned and "." in cleaned:
        # The right-most separator is the decimal one
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "").replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    elif "," in cleaned:
        cleaned = cleaned.replace(",", ".")
    try:
        return round(float(cleaned), 2)
    except ValueError:
        return None


def to_iso_date(value: Any) -> Optional[str]:
    """Normalise dates to ``YYYY-MM-DD``; unparseable dates become None."""
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.strftime("%Y-%m-%d")

    text = str(value).strip().lower()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text[:10], fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue

    match = re.search(r"(\d{1,2})\s+de\s+([a-záéíóú]+)\s+(?:de|del)\s+(\d{4})", text)
    if match and match.group(2) in SPANISH_MONTHS:
        try:
            return date(int(match.group(3)), SPANISH_MONTHS[match.group(2)], int(match.group(1))).isoformat()
        except ValueError:
            return None
    return None


def to_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if item not in (None, "")]
    if isinstance(value, str):
        return [part.strip() for part in re.split(r"[;\n]", value) if part.strip()]
    return [value]


def to_currency(value: Any) -> str:
    text = (to_text(value) or "EUR").upper()
    return {"€": "EUR", "EUROS": "EUR", "EURO": "EUR"}.get(text, text[:3])


def to_meeting_type(value: Any) -> Optional[str]:
    text = (to_text(value) or "").lower()
    return text if text in MEETING_TYPES else None


FieldSpec = Tuple[str, Tuple[str, ...], Callable[[Any], Any]]

FIELD_SPECS: Dict[DocumentType, List[FieldSpec]] = {
    DocumentType.ACTA: [
        ("president_in", ("president_in", "presidente_entrante", "presidente"), to_text),
        ("president_out", ("president_out", "presidente_saliente"), to_text),
        ("administrator", ("administrator", "administrador"), to_text),
        ("summary", ("summary", "resumen"), to_text),
        ("decisions", ("decisions", "decisiones"), to_text),
        ("document_date", ("document_date", "fecha", "fecha_reunion"), to_iso_date),
        ("meeting_type", ("meeting_type", "tipo_reunion"), to_meeting_type),
        ("location", ("location", "lugar"), to_text),
        ("community_name", ("community_name", "comunidad_nombre", "comunidad"), to_text),
        ("agenda", ("agenda", "orden_del_dia"), to_list),
        ("agreements", ("agreements", "acuerdos"), to_list),
        ("topic_keywords", ("topic_keywords", "palabras_clave"), to_list),
    ],
    DocumentType.FACTURA: [
        ("invoice_number", ("invoice_number", "numero_factura"), to_text),
        ("provider_name", ("provider_name", "vendor_name", "proveedor"), to_text),
        ("provider_tax_id", ("provider_tax_id", "vendor_tax_id", "cif_proveedor"), to_text),
        ("client_name", ("client_name", "cliente"), to_text),
        ("client_tax_id", ("client_tax_id", "cif_cliente"), to_text),
        ("issue_date", ("issue_date", "invoice_date", "fecha_emision", "fecha"), to_iso_date),
        ("due_date", ("due_date", "fecha_vencimiento"), to_iso_date),
        ("subtotal", ("subtotal", "base_imponible"), to_amount),
        ("tax_amount", ("tax_amount", "iva"), to_amount),
        ("total_amount", ("total_amount", "amount", "importe_total", "total"), to_amount),
        ("currency", ("currency", "moneda"), to_currency),
        ("category", ("category", "categoria"), to_text),
        ("payment_method", ("payment_method", "forma_pago"), to_text),
        ("products", ("products", "productos", "conceptos"), to_list),
        ("notes", ("notes", "notas"), to_text),
    ],
    DocumentType.CONTRATO: [
        ("contract_title", ("contract_title", "titulo_contrato", "titulo"), to_text),
        ("party_a", ("party_a", "parte_a"), to_text),
        ("party_b", ("party_b", "parte_b"), to_text),
        ("contract_type", ("contract_type", "tipo_contrato"), to_text),
        ("total_amount", ("total_amount", "importe_total", "importe"), to_amount),
        ("currency", ("currency", "moneda"), to_currency),
        ("start_date", ("start_date", "fecha_inicio"), to_iso_date),
        ("end_date", ("end_date", "fecha_fin"), to_iso_date),
        ("summary", ("summary", "resumen"), to_text),
    ],
    DocumentType.COMUNICADO: [
        ("communication_date", ("communication_date", "fecha"), to_iso_date),
        ("community_name", ("community_name", "comunidad"), to_text),
        ("sender", ("sender", "remitente"), to_text),
        ("subject", ("subject", "asunto"), to_text),
        ("summary", ("summary", "resumen"), to_text),
        ("category", ("category", "categoria"), to_text),
        ("urgency", ("urgency", "urgencia"), to_text),
    ],
}


def _lookup(raw: Dict[str, Any], aliases: Tuple[str, ...]) -> Any:
    lowered = {str(key).lower(): value for key, value in raw.items()}
    for alias in aliases:
        if lowered.get(alias) not in (None, ""):
            return lowered[alias]
    return None


def normalize_fields(document_type: DocumentType, raw: Any) -> Dict[str, Any]:
    """Map a parsed AI response onto the flat record for a document type.

    Types without a field spec keep their scalar and list values with
    trimmed string keys; nested objects are dropped.
    """
    if not isinstance(raw, dict):
        return {}

    specs = FIELD_SPECS.get(document_type)
    if specs is None:
        return {
            str(key).strip(): value.strip() if isinstance(value, str) else value
            for key, value in raw.items()
            if isinstance(value, (str, int, float, bool, list)) or value is None
        }

    return {column: convert(_lookup(raw, aliases)) for column, aliases, convert in specs}


def extract_basic_metadata(text: str) -> Dict[str, Any]:
    """Regex-only metadata for documents without a usable type."""
    found: Dict[str, Any] = {}
    date_match = re.search(r"\b(\d{1,2}[/-]\d{1,2}[/-]\d{4})\b", text) or re.search(
        r"\b\d{1,2}\s+de\s+[a-záéíóú]+\s+de\s+\d{4}\b", text, re.IGNORECASE
    )
    if date_match:
        found["document_date"] = to_iso_date(date_match.group(0))

    for field, label in (("president", "presidente"), ("administrator", "administrador")):
        match = re.search(rf"\b{label}a?\s*:?\s*(?:d\.|dña\.|don|doña)?\s*([^\n,.;:]{{3,60}})", text, re.IGNORECASE)
        if match:
            found[field] = match.group(1).strip()

    found["text_length"] = len(text)
    return found
