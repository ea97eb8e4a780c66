"""Tests for template-driven field extraction."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.exceptions import ConfigurationError, ParseFailed, TemplateNotFound
from app.core.llm_client import LLMResponse
from app.database.models import PromptTemplate
from app.models.document_models import DocumentType
from app.services.metadata.field_extractor import FieldExtractor


@pytest.fixture
def prompts():
    repository = MagicMock()
    repository.get_active = AsyncMock(
        return_value=PromptTemplate(
            name="factura_extractor_v2",
            version=3,
            template='Extrae {"total": 0} de:\n{document_text}',
            variables=["document_text"],
            is_active=True,
        )
    )
    return repository


@pytest.fixture
def client():
    gemini = MagicMock()
    gemini.generate = AsyncMock(
        return_value=LLMResponse(
            text='```json\n{"numero_factura": "F-1", "total": "121,00"}\n```',
            input_tokens=420,
            output_tokens=35,
        )
    )
    return gemini


class TestFieldExtractor:
    @pytest.mark.asyncio
    async def test_renders_template_and_normalizes(self, prompts, client):
        result = await FieldExtractor(prompts, client).run(DocumentType.FACTURA, "FACTURA F-1 TOTAL 121,00")

        assert result.fields["invoice_number"] == "F-1"
        assert result.fields["total_amount"] == 121.0
        assert result.template_name == "factura_extractor_v2"
        assert result.template_version == 3
        assert (result.input_tokens, result.output_tokens) == (420, 35)

        prompt = client.generate.await_args.kwargs["contents"]
        assert prompt.startswith('Extrae {"total": 0} de:\nFACTURA F-1')
        assert client.generate.await_args.kwargs["generation_config"]["max_output_tokens"] == 1000

    @pytest.mark.asyncio
    async def test_missing_template(self, prompts, client):
        prompts.get_active.return_value = None

        with pytest.raises(TemplateNotFound):
            await FieldExtractor(prompts, client).run(DocumentType.FACTURA, "texto")
        client.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_unparseable_response_carries_raw_text_and_usage(self, prompts, client):
        client.generate.return_value = LLMResponse(text="no hay datos", input_tokens=380, output_tokens=12)

        with pytest.raises(ParseFailed) as exc_info:
            await FieldExtractor(prompts, client).run(DocumentType.FACTURA, "texto")

        assert exc_info.value.raw_response == "no hay datos"
        assert (exc_info.value.input_tokens, exc_info.value.output_tokens) == (380, 12)

    @pytest.mark.asyncio
    async def test_without_client(self, prompts):
        with pytest.raises(ConfigurationError):
            await FieldExtractor(prompts, None).run(DocumentType.ACTA, "texto")
