"""Text extraction strategies.

Every strategy is a picklable callable ``(bytes) -> StrategyOutput`` so it can
be shipped to a worker process. Strategies raise on failure; the adapter
decides whether the produced text is long enough.
"""

import base64
import io
import math
from dataclasses import dataclass

import httpx
import pdfplumber

from app.core.exceptions import StrategyError
from app.core.llm_client import GeminiClient
from app.models.document_models import ExtractionMethod

BYTES_PER_PAGE_ESTIMATE = 1024 * 1024

VISION_PROMPT = (
    "Transcribe all the text of this PDF document exactly as written, page by page. "
    "Return plain text only, without commentary."
)


@dataclass
class StrategyOutput:
    text: str
    page_count: int


def count_pdf_pages(data: bytes) -> int:
    """Page count from the PDF structure, or a size-based estimate when unreadable."""
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            return len(pdf.pages)
    except Exception:
        return max(1, math.ceil(len(data) / BYTES_PER_PAGE_ESTIMATE))


class PdfParseStrategy:
    """Read the embedded text layer with pdfplumber."""

    method = ExtractionMethod.PDF_PARSE

    def __call__(self, data: bytes) -> StrategyOutput:
        pages = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                pages.append(page.extract_text() or "")
        return StrategyOutput(text="\n\n".join(pages).strip(), page_count=len(pages))


class MistralOcrStrategy:
    """Send the PDF to the Mistral OCR API as a base64 data URL."""

    method = ExtractionMethod.OCR

    def __init__(self, api_key: str, api_url: str, model: str = "mistral-ocr-latest", timeout: int = 120):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout

    def __call__(self, data: bytes) -> StrategyOutput:
        if not self.api_key:
            raise StrategyError("MISTRAL_API_KEY is not configured")

        payload = {
            "model": self.model,
            "document": {
                "type": "document_url",
                "document_url": f"data:application/pdf;base64,{base64.b64encode(data).decode('ascii')}",
            },
            "include_image_base64": False,
        }
        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            )
            response.raise_for_status()
            result = response.json()

        pages = result.get("pages", [])
        text = "\n\n".join(page.get("markdown") or page.get("text") or "" for page in pages)
        return StrategyOutput(text=text.strip(), page_count=len(pages))


class GeminiVisionStrategy:
    """Ask Gemini to transcribe the PDF; refused above a page limit."""

    method = ExtractionMethod.AI_VISION

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", max_pages: int = 5, timeout: int = 120):
        self.api_key = api_key
        self.model = model
        self.max_pages = max_pages
        self.timeout = timeout

    def __call__(self, data: bytes) -> StrategyOutput:
        if not self.api_key:
            raise StrategyError("GEMINI_API_KEY is not configured")

        page_count = count_pdf_pages(data)
        if page_count > self.max_pages:
            raise StrategyError(
                f"manual-review-required: {page_count} pages exceeds the AI vision limit of {self.max_pages}"
            )

        client = GeminiClient(api_key=self.api_key, model=self.model, timeout=self.timeout, max_retries=1)
        response = client.generate_from_pdf(data, VISION_PROMPT)
        return StrategyOutput(text=response.text.strip(), page_count=page_count)
