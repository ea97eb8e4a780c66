"""Custom exception hierarchy."""

from typing import List, Optional


class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""
    pass


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class NotFound(AppError):
    """Raised when a row or a stored file does not exist."""
    pass


class TransportError(AppError):
    """Raised when the network or the blob store fails."""
    pass


class AuthFailed(AppError):
    """Raised when the auth provider rejects a code or a session."""

    def __init__(self, message: str = "Authentication failed", redirect_to: str = "/login", original_error: Exception = None):
        super().__init__(message, original_error)
        self.redirect_to = redirect_to


class Forbidden(AppError):
    """Raised when a permission check fails."""

    def __init__(self, message: str = "Insufficient permissions", redirect_to: str = "/dashboard?error=insufficient_permissions"):
        super().__init__(message)
        self.redirect_to = redirect_to


class PipelineError(AppError):
    """Base exception for pipeline errors."""
    pass


class ExtractionFailed(PipelineError):
    """All text extraction strategies were exhausted."""

    def __init__(self, attempts: List[dict]):
        methods = ", ".join(attempt["method"] for attempt in attempts) or "none"
        super().__init__(f"Text extraction failed after trying: {methods}")
        self.attempts = attempts

    @property
    def attempted_methods(self) -> List[str]:
        return [attempt["method"] for attempt in self.attempts]


class ParseFailed(PipelineError):
    """The AI response could not be parsed as JSON.

    Token usage of the call that produced the response is attached by the
    caller so a failed stage still reports what it cost.
    """

    def __init__(self, raw_response: str, errors: Optional[List[str]] = None):
        super().__init__("AI response is not parseable as JSON")
        self.raw_response = raw_response
        self.errors = errors or []
        self.input_tokens = 0
        self.output_tokens = 0


class TemplateNotFound(PipelineError):
    """No active prompt template exists for a document type."""

    def __init__(self, name: str):
        super().__init__(f"No active prompt template named '{name}'")
        self.name = name


class InvalidStatusTransition(PipelineError):
    """A stage status write violates the allowed transition table."""
    pass


class StrategyError(PipelineError):
    """A single extraction strategy crashed, timed out or was refused."""
    pass


class ProcessingInProgress(PipelineError):
    """Another run holds a stage of the document in the running state."""
    pass
