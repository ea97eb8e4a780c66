"""Structured field extraction with stored prompt templates."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.core.exceptions import ConfigurationError, ParseFailed, TemplateNotFound
from app.core.llm_client import GeminiClient
from app.models.document_models import DocumentType
from app.repositories.prompt_repository import PromptRepository
from app.services.chunking.token_counter import TokenCounter
from app.services.metadata.templates import generation_config_for, render_template, template_name_for
from app.services.metadata.validators import normalize_fields
from app.utils.json_parser import parse_json_response
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class FieldExtraction:
    fields: Dict[str, Any]
    template_name: str
    template_version: int
    input_tokens: int = 0
    output_tokens: int = 0


class FieldExtractor:
    """Extract a typed record from document text.

    One AI call per extraction, no retry. The response goes through the
    layered JSON parser and then the per-type normaliser.
    """

    def __init__(
        self,
        prompt_repository: PromptRepository,
        client: Optional[GeminiClient],
        token_counter: Optional[TokenCounter] = None,
    ):
        self.prompts = prompt_repository
        self.client = client
        self.counter = token_counter or TokenCounter()

    async def run(self, document_type: DocumentType, text: str) -> FieldExtraction:
        """Extract fields and report template and token usage.

        Raises:
            TemplateNotFound: If no active template exists for the type
            ParseFailed: If the response is not parseable as JSON
            ConfigurationError: If no AI client is configured
            APIClientError: If the AI call fails
        """
        if self.client is None:
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        name = template_name_for(document_type)
        template = await self.prompts.get_active(name)
        if template is None:
            raise TemplateNotFound(name)

        prompt = render_template(template.template, {"document_text": text})
        response = await self.client.generate(
            contents=prompt,
            generation_config=generation_config_for(document_type),
        )
        input_tokens = response.input_tokens or self.counter.count_tokens(prompt)
        output_tokens = response.output_tokens or self.counter.count_tokens(response.text or "")

        try:
            parsed = parse_json_response(response.text)
        except ParseFailed as e:
            e.input_tokens = input_tokens
            e.output_tokens = output_tokens
            raise
        fields = normalize_fields(document_type, parsed)

        LOGGER.info(
            f"Extracted {len(fields)} fields for {document_type.value}",
            extra={"template": name, "version": template.version},
        )
        return FieldExtraction(
            fields=fields,
            template_name=name,
            template_version=template.version,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )

    async def extract_fields(self, document_type: DocumentType, text: str) -> Dict[str, Any]:
        """Extract the flat record for a document type."""
        return (await self.run(document_type, text)).fields
