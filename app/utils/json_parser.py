"""Layered JSON parsing for AI responses.

Each strategy is a pure function ``text -> ParseOutcome``. ``parse_json_response``
tries them in order and returns the first success; ``ParseFailed`` keeps the
raw response when all of them fail.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple

from app.core.exceptions import ParseFailed
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class ParseOutcome:
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _loads(candidate: str) -> ParseOutcome:
    try:
        return ParseOutcome(value=json.loads(candidate))
    except (json.JSONDecodeError, TypeError) as e:
        return ParseOutcome(error=str(e))


def parse_fenced_block(text: str) -> ParseOutcome:
    """Parse the first fenced code block, ignoring prose around it."""
    match = FENCED_BLOCK.search(text or "")
    if not match:
        return ParseOutcome(error="no fenced block")
    return _loads(match.group(1).strip())


def _first_object_span(text: str) -> Optional[str]:
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for position in range(start, len(text)):
        char = text[position]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:position + 1]
    return None


def parse_first_object(text: str) -> ParseOutcome:
    """Parse the first balanced ``{...}`` span.

    A response that is itself a JSON array is left to the raw strategy so the
    whole array is kept.
    """
    if (text or "").lstrip().startswith("["):
        return ParseOutcome(error="response is an array")
    span = _first_object_span(text or "")
    if span is None:
        return ParseOutcome(error="no balanced object span")
    return _loads(span)


def parse_raw(text: str) -> ParseOutcome:
    """Parse the whole response as JSON."""
    return _loads((text or "").strip())


DEFAULT_STRATEGIES: Tuple[Callable[[str], ParseOutcome], ...] = (
    parse_fenced_block,
    parse_first_object,
    parse_raw,
)


def parse_json_response(
    text: str,
    strategies: Sequence[Callable[[str], ParseOutcome]] = DEFAULT_STRATEGIES,
) -> Any:
    """Parse JSON from an AI response using the first strategy that succeeds.

    Args:
        text: Raw model output
        strategies: Ordered parser strategies

    Returns:
        Parsed JSON value

    Raises:
        ParseFailed: If every strategy fails; carries the raw response
    """
    errors: List[str] = []
    for strategy in strategies:
        outcome = strategy(text)
        if outcome.ok:
            LOGGER.debug(f"Parsed AI response with {strategy.__name__}")
            return outcome.value
        errors.append(f"{strategy.__name__}: {outcome.error}")

    LOGGER.warning("AI response could not be parsed", extra={"errors": errors, "preview": (text or "")[:200]})
    raise ParseFailed(raw_response=text, errors=errors)
