"""Error taxonomy for the chat enhancement engine.

`ChatServiceError` subclasses are caught at the service boundary and turned
into a `ServiceResponse`. `ProviderCallError` and `ResumeParseError` describe a
single failed AI attempt and never leave the orchestrator.
"""

AI_UNAVAILABLE_MESSAGE = "AI service is temporarily unavailable. Please try again later."


class ChatServiceError(Exception):
    code = "internal_error"
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(ChatServiceError):
    code = "not_found"
    default_message = "Not found"


class ValidationFailure(ChatServiceError):
    code = "validation_failure"
    default_message = "Validation failed"


class ProviderUnavailable(ChatServiceError):
    code = "provider_unavailable"
    default_message = AI_UNAVAILABLE_MESSAGE

    def __init__(self, message: str | None = None):
        # Callers never see provider internals.
        super().__init__(message or AI_UNAVAILABLE_MESSAGE)


class ParseFailure(ProviderUnavailable):
    """Model output could not be parsed; shown to users as ProviderUnavailable."""


class QuotaExceeded(ChatServiceError):
    code = "quota_exceeded"
    default_message = "Usage limit reached for your plan."


class ProviderCallError(Exception):
    """Network failure, non-success status or empty content from a provider."""


class ResumeParseError(Exception):
    """Provider answered, but no valid resume JSON could be read from it."""


HTTP_STATUS_BY_CODE = {
    NotFound.code: 404,
    ValidationFailure.code: 422,
    ProviderUnavailable.code: 503,
    QuotaExceeded.code: 429,
    ChatServiceError.code: 500,
}
