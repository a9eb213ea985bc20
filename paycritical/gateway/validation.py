"""Map HTTP status codes of Paycritical responses onto typed errors."""

from pydantic import ValidationError

from paycritical.gateway.errors import (
    ApiValidationError,
    ForbiddenError,
    GenericApiError,
    InternalServerError,
    UnauthorizedError,
)
from paycritical.gateway.models import ValidationSummary

DEFAULT_VALIDATION_SUMMARY = ValidationSummary(code="400", description="The request is invalid.")


def parse_validation_summary(body: str) -> ValidationSummary:
    """Read a 400 body, falling back to the generic summary when it is unusable."""

    try:
        return ValidationSummary.model_validate_json(body)
    except ValidationError:
        return DEFAULT_VALIDATION_SUMMARY


def validate_response(status_code: int, body: str) -> None:
    """Raise the error matching `status_code`; return silently on 2xx.

    Specific codes are checked before the generic fallback, so any status not
    listed here (404, 409, 502, ...) becomes a `GenericApiError`.
    """

    if 200 <= status_code <= 299:
        return
    if status_code == 400:
        summary = parse_validation_summary(body)
        raise ApiValidationError(summary.code, summary.description)
    if status_code == 401:
        raise UnauthorizedError(body)
    if status_code == 403:
        raise ForbiddenError(body)
    if status_code == 500:
        raise InternalServerError(body)
    raise GenericApiError(body, status_code=status_code)
