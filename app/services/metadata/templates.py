"""Prompt template names and generation limits per document type."""

from typing import Dict, List

from app.models.document_models import DocumentType

TEMPLATE_NAMES: Dict[DocumentType, str] = {
    DocumentType.ACTA: "acta_extractor_v2",
    DocumentType.FACTURA: "factura_extractor_v2",
    DocumentType.CONTRATO: "contrato_extractor_v1",
    DocumentType.COMUNICADO: "comunicado_extractor_v1",
    DocumentType.PRESUPUESTO: "presupuesto_extractor_v1",
    DocumentType.ALBARAN: "albaran_extractor_v1",
    DocumentType.ESCRITURA: "escritura_extractor_v1",
}

LONG_FORM_TYPES = {DocumentType.ACTA, DocumentType.CONTRATO}
LONG_FORM_MAX_TOKENS = 3000
DEFAULT_MAX_TOKENS = 1000
EXTRACTION_TEMPERATURE = 0.1


def template_name_for(document_type: DocumentType) -> str:
    return TEMPLATE_NAMES.get(document_type, f"{document_type.value}_extractor_v1")


def generation_config_for(document_type: DocumentType) -> Dict[str, object]:
    return {
        "temperature": EXTRACTION_TEMPERATURE,
        "max_output_tokens": LONG_FORM_MAX_TOKENS if document_type in LONG_FORM_TYPES else DEFAULT_MAX_TOKENS,
    }


def render_template(template: str, variables: Dict[str, str]) -> str:
    """Substitute ``{name}`` placeholders without touching other braces.

    Templates embed literal JSON examples, so ``str.format`` cannot be used.
    """
    rendered = template
    for name, value in variables.items():
        rendered = rendered.replace("{" + name + "}", value)
    return rendered


_JSON_ONLY = "Responde SOLO con un objeto JSON válido, sin texto adicional. Usa null para los datos ausentes."

DEFAULT_TEMPLATES: Dict[str, Dict[str, object]] = {
    "acta_extractor_v2": {
        "document_type": DocumentType.ACTA.value,
        "fields": [
            "presidente_entrante", "presidente_saliente", "administrador", "resumen", "decisiones",
            "fecha_reunion", "tipo_reunion (ordinaria|extraordinaria)", "lugar", "comunidad_nombre",
            "orden_del_dia (lista)", "acuerdos (lista)", "topic_keywords (lista)",
        ],
        "intro": "Analiza el acta de la junta de propietarios y extrae:",
    },
    "factura_extractor_v2": {
        "document_type": DocumentType.FACTURA.value,
        "fields": [
            "invoice_number", "provider_name", "provider_tax_id", "client_name", "client_tax_id",
            "issue_date", "due_date", "subtotal", "tax_amount", "total_amount", "currency",
            "category", "payment_method", "products (lista)", "notes",
        ],
        "intro": "Analiza la factura y extrae:",
    },
    "contrato_extractor_v1": {
        "document_type": DocumentType.CONTRATO.value,
        "fields": [
            "titulo_contrato", "parte_a", "parte_b", "tipo_contrato", "importe_total", "moneda",
            "fecha_inicio", "fecha_fin", "resumen",
        ],
        "intro": "Analiza el contrato y extrae:",
    },
    "comunicado_extractor_v1": {
        "document_type": DocumentType.COMUNICADO.value,
        "fields": ["fecha", "comunidad", "remitente", "asunto", "resumen", "categoria", "urgencia"],
        "intro": "Analiza el comunicado a los vecinos y extrae:",
    },
    "presupuesto_extractor_v1": {
        "document_type": DocumentType.PRESUPUESTO.value,
        "fields": ["proveedor", "cliente", "fecha", "validez", "importe_total", "conceptos (lista)", "resumen"],
        "intro": "Analiza el presupuesto y extrae:",
    },
    "albaran_extractor_v1": {
        "document_type": DocumentType.ALBARAN.value,
        "fields": ["numero_albaran", "proveedor", "cliente", "fecha_entrega", "productos (lista)", "observaciones"],
        "intro": "Analiza el albarán de entrega y extrae:",
    },
    "escritura_extractor_v1": {
        "document_type": DocumentType.ESCRITURA.value,
        "fields": ["notario", "fecha", "otorgantes (lista)", "inmueble", "referencia_catastral", "resumen"],
        "intro": "Analiza la escritura notarial y extrae:",
    },
}


def build_default_template(name: str) -> str:
    spec = DEFAULT_TEMPLATES[name]
    fields: List[str] = spec["fields"]  # type: ignore[assignment]
    lines = "\n".join(f"- {field}" for field in fields)
    return f"{spec['intro']}\n{lines}\n\n{_JSON_ONLY}\n\nDOCUMENTO:\n{{document_text}}"
