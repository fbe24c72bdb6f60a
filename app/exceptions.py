"""Error hierarchy for the submission pipeline."""
from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    CLIENT_VALIDATION = "client_validation"
    SERVER_MISCONFIGURATION = "server_misconfiguration"
    UPSTREAM_FAILURE = "upstream_failure"
    PERSISTENCE_FAILURE = "persistence_failure"
    INTERNAL_ERROR = "internal_error"

    @property
    def status_code(self) -> int:
        return 400 if self is ErrorCategory.CLIENT_VALIDATION else 500


class CareersError(Exception):
    """Base exception for the careers service."""


class SubmissionError(CareersError):
    """A submission stopped at one of the pipeline gates.

    ``message`` is safe to show to the applicant. Anything more detailed
    belongs in ``detail`` and is only ever logged.
    """

    category = ErrorCategory.CLIENT_VALIDATION

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class SubmissionRejected(SubmissionError):
    """The applicant's input failed validation or human verification."""


class MisconfigurationError(SubmissionError):
    """A required secret or credential is not configured."""

    category = ErrorCategory.SERVER_MISCONFIGURATION

    def __init__(self, detail: str) -> None:
        super().__init__("Server misconfiguration", detail=detail)


class UpstreamServiceError(SubmissionError):
    """The verification or storage service failed or was unreachable."""

    category = ErrorCategory.UPSTREAM_FAILURE

    def __init__(self, detail: str) -> None:
        super().__init__("Server error", detail=detail)


class PersistenceError(SubmissionError):
    """The application record could not be written."""

    category = ErrorCategory.PERSISTENCE_FAILURE

    def __init__(self, detail: str) -> None:
        super().__init__("Server error", detail=detail)


class InternalError(SubmissionError):
    """Anything unexpected; the client only ever sees a generic message."""

    category = ErrorCategory.INTERNAL_ERROR

    def __init__(self, detail: str) -> None:
        super().__init__("Server error", detail=detail)
