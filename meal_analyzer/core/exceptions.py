"""Custom exceptions for the meal analysis pipeline.

Every exception carries a stable ``error_type`` identifier and the HTTP
status code the service maps it to.
"""

from meal_analyzer.core.models import AttemptOutcome


class AnalyzerError(Exception):
    """Base exception for all analyzer errors."""

    error_type = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRequestError(AnalyzerError):
    """Raised when an inbound request is missing fields or malformed."""

    error_type = "invalid_request"
    status_code = 400


class AudioProcessingError(InvalidRequestError):
    """Raised when uploaded audio is rejected before transcription."""

    def __init__(self, message: str, error_type: str = "audio_processing_error"):
        super().__init__(message)
        self.error_type = error_type


class UnauthorizedError(AnalyzerError):
    """Raised when the caller has no authenticated identity."""

    error_type = "unauthorized"
    status_code = 401


class ForbiddenError(AnalyzerError):
    """Raised when the caller's identity does not match the request subject."""

    error_type = "forbidden"
    status_code = 403


class ConfigurationError(AnalyzerError):
    """Raised when there is a configuration problem."""

    error_type = "configuration_error"


class UpstreamError(AnalyzerError):
    """Base class for transport-level errors talking to a remote service."""

    error_type = "upstream_error"
    status_code = 502

    def __init__(self, message: str, upstream: str | None = None):
        self.upstream = upstream
        super().__init__(message)


class UpstreamUnreachableError(UpstreamError):
    """Raised when the upstream server is unreachable."""

    pass


class UpstreamTimeoutError(UpstreamError):
    """Raised when a request to the upstream server times out."""

    pass


class UpstreamStatusError(UpstreamError):
    """Raised when the upstream server answers with a non-2xx status."""

    def __init__(self, message: str, upstream: str | None = None, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(message, upstream=upstream)


class ProviderError(AnalyzerError):
    """A single provider attempt failed. Drives fallback, never surfaced directly."""

    error_type = "provider_error"
    status_code = 502

    def __init__(self, message: str, provider: str, outcome: AttemptOutcome):
        self.provider = provider
        self.outcome = outcome
        super().__init__(message)


class AllProvidersFailedError(AnalyzerError):
    """Raised when both the primary and the secondary provider failed."""

    error_type = "analysis_failed"

    def __init__(self, message: str, errors: list[AnalyzerError] | None = None):
        self.errors = list(errors or [])
        super().__init__(message)


class MalformedProviderOutputError(AllProvidersFailedError):
    """Raised when provider text contains no recoverable JSON object."""

    error_type = "malformed_provider_output"


class TranscriptionError(AnalyzerError):
    """Raised when audio could not be turned into a transcript."""

    error_type = "transcription_failed"


class PersistenceError(AnalyzerError):
    """Raised by record stores. Logged by the pipeline, never surfaced."""

    error_type = "persistence_error"
