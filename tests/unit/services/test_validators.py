"""Tests for field normalisation of AI extraction output."""

import pytest

from app.models.document_models import DocumentType
from app.services.metadata.validators import (
    extract_basic_metadata,
    normalize_fields,
    to_amount,
    to_iso_date,
    to_list,
)


class TestConverters:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1.234,56 €", 1234.56),
            ("1,234.56", 1234.56),
            ("121,00", 121.0),
            (99, 99.0),
            ("sin importe", None),
            (None, None),
        ],
    )
    def test_to_amount(self, value, expected):
        assert to_amount(value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-15", "2024-03-15"),
            ("15/03/2024", "2024-03-15"),
            ("15 de marzo de 2024", "2024-03-15"),
            ("mañana", None),
        ],
    )
    def test_to_iso_date(self, value, expected):
        assert to_iso_date(value) == expected

    def test_to_list_splits_strings(self):
        assert to_list("cuentas; cargos\nobras") == ["cuentas", "cargos", "obras"]


class TestNormalizeFields:
    def test_invoice_aliases(self):
        fields = normalize_fields(
            DocumentType.FACTURA,
            {"numero_factura": "F-2024-001", "proveedor": "Ascensores SA", "total": "1.210,00", "fecha": "01/02/2024"},
        )

        assert fields["invoice_number"] == "F-2024-001"
        assert fields["provider_name"] == "Ascensores SA"
        assert fields["total_amount"] == 1210.0
        assert fields["issue_date"] == "2024-02-01"
        assert fields["currency"] == "EUR"

    def test_acta_meeting_type(self):
        fields = normalize_fields(DocumentType.ACTA, {"tipo_reunion": "Extraordinaria", "acuerdos": ["a", "b"]})
        assert fields["meeting_type"] == "extraordinaria"
        assert fields["agreements"] == ["a", "b"]

    def test_type_without_spec_keeps_flat_values(self):
        fields = normalize_fields(DocumentType.PRESUPUESTO, {" empresa ": " Obras SL ", "detalle": {"x": 1}})
        assert fields == {"empresa": "Obras SL"}

    def test_non_object_response(self):
        assert normalize_fields(DocumentType.ACTA, ["no", "es", "objeto"]) == {}


class TestExtractBasicMetadata:
    def test_finds_date_and_roles(self, sample_acta_text):
        metadata = extract_basic_metadata(sample_acta_text)

        assert metadata["document_date"] == "2024-03-15"
        assert metadata["president"] == "Juan García López"
        assert metadata["administrator"].startswith("Fincas Centro S")
        assert metadata["text_length"] == len(sample_acta_text)
