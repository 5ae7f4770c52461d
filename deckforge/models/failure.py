"""
Failure classification.

Every error the core raises on purpose is a KnownError: it carries a
FailureKind, a user-appropriate message and an HTTP status so the API and
the batch processor can report it without guessing.

Response types:
- Success: the operation produced a result
- KnownFailure: the system knows why it failed (a KnownError)
- UnknownFailure: anything else
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"

    # Resource failures
    NOT_FOUND = "not_found"
    AMBIGUOUS_MATCH = "ambiguous_match"

    # Service failures
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"

    # Unknown
    UNKNOWN = "unknown"


class OutcomeType(str, Enum):
    """High-level outcome classification."""

    SUCCESS = "success"
    KNOWN_FAILURE = "known_failure"
    UNKNOWN_FAILURE = "unknown_failure"


UNKNOWN_FAILURE_MESSAGE = "Something went wrong while processing the deck."


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )

    @classmethod
    def from_exception(cls, exception: Exception) -> "FailureDetail":
        """
        Classify any exception.

        KnownErrors keep their own classification. Everything else becomes
        an UNKNOWN failure whose detail is only the exception type.
        """
        if isinstance(exception, KnownError):
            return exception.to_detail()
        return cls(
            kind=FailureKind.UNKNOWN,
            message=UNKNOWN_FAILURE_MESSAGE,
            detail=type(exception).__name__,
            suggestion="If this persists, please report the issue.",
        )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a FailureDetail."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class InvalidInputError(KnownError):
    """Raised when a request is well-formed but makes no sense for the deck."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=400,
        )
