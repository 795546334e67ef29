from typing import Any, Mapping, Optional

DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."


class ApiError(Exception):
    """Raised when a backend API call fails.

    Subclasses map onto the HTTP status the backend returned, so page handlers
    can pass the status through unchanged.

    Attributes:
        message: human-readable message taken from the backend envelope
        details: optional mapping with extra context (field errors, raw body)
        code: optional machine-readable error code
        http_status: HTTP status reported by the backend
    """

    http_status = 500

    def __init__(
        self,
        message: str = DEFAULT_ERROR_MESSAGE,
        details: Optional[Mapping[str, Any]] = None,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.code = code
        if http_status is not None:
            self.http_status = http_status

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details:
            payload["details"] = self.details
        return payload

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_status(
        cls,
        status_code: int,
        message: str = DEFAULT_ERROR_MESSAGE,
        details: Optional[Mapping[str, Any]] = None,
    ) -> "ApiError":
        """Build the exception subclass matching a backend status code."""
        error_cls = _STATUS_ERRORS.get(status_code, ApiError)
        return error_cls(message, details=details, http_status=status_code)


class ServiceValidationError(ApiError):
    """Raised when the backend (or a local form guard) rejects input. 400/422."""

    http_status = 400


class UnauthorizedError(ApiError):
    """Raised when the session is missing or could not be refreshed. 401."""

    http_status = 401


class ForbiddenError(ApiError):
    """Raised when the user is signed in but lacks access. 403."""

    http_status = 403


class NotFoundError(ApiError):
    """Raised when a requested resource was not found. 404."""

    http_status = 404


class ConflictError(ApiError):
    """Raised when a resource conflict occurs (e.g. listing sold out). 409."""

    http_status = 409


class BackendUnavailableError(ApiError):
    """Raised when the backend cannot be reached at all. 503."""

    http_status = 503


class RedirectRequired(Exception):
    """Raised by page dependencies to send the browser elsewhere."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


_STATUS_ERRORS: dict[int, type[ApiError]] = {
    400: ServiceValidationError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    422: ServiceValidationError,
}


def extract_error_message(body: Any, default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Pull a display message out of a backend error envelope.

    The backend answers ``{"success": false, "message": ..., "errors": [...]}``;
    ``message`` wins, then the first field error.
    """
    if isinstance(body, Mapping):
        message = body.get("message")
        if message:
            return str(message)
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, Mapping) and first.get("message"):
                return str(first["message"])
    return default
