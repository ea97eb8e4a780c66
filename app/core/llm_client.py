"""Gemini client wrapper used by the classifier, the field extractor and the
AI-vision extraction strategy."""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from google import genai
from google.genai import types

from app.core.exceptions import APIClientError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass
class LLMResponse:
    """Text returned by the model with its token usage, when reported."""

    text: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


def _build_config(
    system_instruction: Optional[str],
    generation_config: Optional[Dict[str, Any]],
) -> types.GenerateContentConfig:
    config = types.GenerateContentConfig(temperature=0.0)
    if generation_config:
        if "temperature" in generation_config:
            config.temperature = generation_config["temperature"]
        if "max_output_tokens" in generation_config:
            config.max_output_tokens = generation_config["max_output_tokens"]
        if "response_mime_type" in generation_config:
            config.response_mime_type = generation_config["response_mime_type"]
    if system_instruction:
        config.system_instruction = system_instruction
    return config


def _to_response(response: Any) -> LLMResponse:
    usage = getattr(response, "usage_metadata", None)
    return LLMResponse(
        text=response.text or "",
        input_tokens=getattr(usage, "prompt_token_count", None),
        output_tokens=getattr(usage, "candidates_token_count", None),
    )


class GeminiClient:
    """Wrapper for Google Gemini API client."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash",
        timeout: int = 60,
        max_retries: int = 1,
    ):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            timeout: Request timeout in seconds
            max_retries: Attempts per call; 1 means a single call with no retry
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max(1, max_retries)

        try:
            self.client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=timeout * 1000),
            )
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise APIClientError(f"Failed to initialize Gemini client: {e}", original_error=e)

    async def generate(
        self,
        contents: Union[str, List[Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        """Generate content using the Gemini model.

        Args:
            contents: Input content (string or list of parts)
            system_instruction: Optional system instruction
            generation_config: Optional generation config (temperature, etc.)

        Returns:
            LLMResponse with text and token usage

        Raises:
            APIClientError: If generation fails on the last attempt
        """
        config = _build_config(system_instruction, generation_config)

        for attempt in range(self.max_retries):
            try:
                response = await self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
                if not response.text:
                    LOGGER.warning("Empty response from Gemini")
                return _to_response(response)
            except Exception as e:
                LOGGER.warning(f"Gemini API error (Attempt {attempt + 1}/{self.max_retries}): {e}")
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(2 ** attempt)
                else:
                    LOGGER.error(f"Gemini generation failed: {e}", exc_info=True)
                    raise APIClientError(f"Gemini generation failed: {e}", original_error=e)

        raise APIClientError("Gemini generation failed")

    async def generate_content(
        self,
        contents: Union[str, List[Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content and return only the text."""
        response = await self.generate(contents, system_instruction, generation_config)
        return response.text

    def generate_from_pdf(self, pdf_bytes: bytes, prompt: str) -> LLMResponse:
        """Blocking single call reading a PDF; meant for worker processes.

        Raises:
            APIClientError: If generation fails
        """
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=[
                    types.Part.from_bytes(data=pdf_bytes, mime_type="application/pdf"),
                    prompt,
                ],
                config=_build_config(None, {"temperature": 0.0}),
            )
        except Exception as e:
            raise APIClientError(f"Gemini vision call failed: {e}", original_error=e)
        return _to_response(response)
