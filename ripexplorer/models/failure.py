"""
Failure classification for RipExplorer.

Every error the system knows how to explain is a KnownError subclass.
The API layer converts KnownError into a FailureDetail JSON body with
the error's HTTP status, so no unexplained 500 reaches a client for
an expected failure (upstream outage, unknown user, unparseable page).

Internal extraction strategies return None for "nothing found here";
public entry points raise. There is no path that returns an empty
dict in place of an error.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    # Input validation failures
    INVALID_INPUT = "invalid_input"
    INVALID_URL = "invalid_url"

    # Resource failures
    NOT_FOUND = "not_found"
    EXTRACTION_FAILED = "extraction_failed"

    # Service failures
    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"
    TIMEOUT = "timeout"

    # Unknown
    UNKNOWN = "unknown"


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


class FailureResponse(BaseModel):
    """Body returned for every KnownError."""

    failure: FailureDetail


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
    """Request input failed validation."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.INVALID_INPUT,
            message=message,
            detail=detail,
            status_code=400,
        )


class InvalidUrlError(KnownError):
    """URL scheme is not HTTP or HTTPS. Never retried."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            kind=FailureKind.INVALID_URL,
            message="Only HTTP and HTTPS URLs are allowed",
            detail=url,
            status_code=400,
        )


class FetchError(KnownError):
    """
    Fetching an upstream resource failed.

    Raised directly when every attempt failed; `detail` carries the
    last underlying error message.
    """

    def __init__(
        self,
        message: str,
        detail: str | None = None,
        kind: FailureKind = FailureKind.EXTERNAL_API_ERROR,
        status_code: int = 502,
    ):
        super().__init__(
            kind=kind,
            message=message,
            detail=detail,
            suggestion="The upstream site may be slow or unavailable. Try again shortly.",
            status_code=status_code,
        )


class FetchTimeoutError(FetchError):
    """The final fetch attempt timed out."""

    def __init__(self, url: str, attempts: int):
        self.url = url
        self.attempts = attempts
        super().__init__(
            message=(
                f"Failed to fetch HTML from {url}: Request timed out after "
                f"{attempts} attempts. The page may be loading slowly or "
                "experiencing issues."
            ),
            kind=FailureKind.TIMEOUT,
            status_code=504,
        )


class FetchHTTPError(FetchError):
    """Upstream answered with a non-retryable HTTP status."""

    def __init__(self, url: str, http_status: int):
        self.url = url
        self.http_status = http_status
        not_found = http_status == 404
        super().__init__(
            message=f"HTTP error! status: {http_status}",
            detail=url,
            kind=FailureKind.NOT_FOUND if not_found else FailureKind.EXTERNAL_API_ERROR,
            status_code=404 if not_found else 502,
        )


class NotHtmlError(FetchError):
    """Upstream answered with something other than text/html. Never retried."""

    def __init__(self, url: str, content_type: str | None):
        self.url = url
        self.content_type = content_type
        super().__init__(
            message="Response is not HTML content",
            detail=f"{url} returned content-type {content_type!r}",
        )


class ExtractionError(KnownError):
    """No extraction strategy produced usable data."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(
            kind=FailureKind.EXTRACTION_FAILED,
            message=message,
            detail=detail,
            suggestion="The page layout may have changed, or the profile may be empty.",
            status_code=422,
        )


class UserNotFoundError(KnownError):
    """A username or user id could not be resolved on rip.fun."""

    def __init__(self, user: str, detail: str | None = None):
        self.user = user
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"User '{user}' not found",
            detail=detail,
            suggestion="Check the spelling, or use the numeric rip.fun user id.",
            status_code=404,
        )
