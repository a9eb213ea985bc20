"""Error taxonomy raised by `PaycriticalGateway`.

Every error carries a `kind` discriminant so callers can branch on one field
instead of an isinstance ladder:

    PaycriticalError
    ├── ApiError                (non-2xx HTTP response)
    │   ├── ApiValidationError      400, code + description
    │   ├── UnauthorizedError       401, raw body
    │   ├── ForbiddenError          403, raw body
    │   ├── InternalServerError     500, raw body
    │   └── GenericApiError         any other status, raw body
    └── GatewayTransportError   request never got an HTTP response
"""

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    INTERNAL_SERVER_ERROR = "internal_server_error"
    GENERIC = "generic"
    TRANSPORT = "transport"


class PaycriticalError(Exception):
    """Root of every failure surfaced by the gateway client."""

    kind: ErrorKind


class ApiError(PaycriticalError):
    """The API answered with a non-success status code."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ApiValidationError(ApiError):
    """Request rejected as invalid; fix the input before re-issuing it."""

    kind = ErrorKind.VALIDATION

    def __init__(self, code: str, description: str) -> None:
        super().__init__(f"{code}: {description}", status_code=400)
        self.code = code
        self.description = description


class _DetailError(ApiError):
    status: int = 0

    def __init__(self, detail: str) -> None:
        super().__init__(detail, status_code=self.status)
        self.detail = detail


class UnauthorizedError(_DetailError):
    """Authorization header missing or malformed."""

    kind = ErrorKind.UNAUTHORIZED
    status = 401


class ForbiddenError(_DetailError):
    """Authorization header present but rejected."""

    kind = ErrorKind.FORBIDDEN
    status = 403


class InternalServerError(_DetailError):
    """Server-side fault.

    The body usually holds a server event id worth quoting to Paycritical
    support. Retrying is left to the caller.
    """

    kind = ErrorKind.INTERNAL_SERVER_ERROR
    status = 500


class GenericApiError(ApiError):
    """Any other non-2xx status (404, 409, 502, ...)."""

    kind = ErrorKind.GENERIC

    def __init__(self, detail: str, *, status_code: int) -> None:
        super().__init__(detail, status_code=status_code)
        self.detail = detail


class GatewayTransportError(PaycriticalError):
    """Connection, DNS or timeout failure before any HTTP response arrived."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, method: str, url: str) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
