"""Response DTOs returned by the Paycritical API.

Attributes are snake_case in Python and camelCase on the wire. Unknown
fields are ignored so new server-side fields do not break older clients.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PaycriticalModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PaymentStatus(PaycriticalModel):
    """Current state of one payment (`GET /api/payment/{id}`)."""

    payment_id: str | None = None
    status: str | None = None
    transaction_type: str | None = None
    amount: float | None = None


class Payment(PaycriticalModel):
    """Payment created by `POST /api/payment`."""

    payment_id: str | None = None
    status: str | None = None


class Capture(PaycriticalModel):
    capture_id: str | None = None
    amount: float | None = None
    date: str | None = None


class Authorization(PaycriticalModel):
    """Reserved amount and the captures already settled against it."""

    status: str | None = None
    expiration: str | None = None
    remaining_amount: float | None = None
    captures: list[Capture] = Field(default_factory=list)

    @field_validator("captures", mode="before")
    @classmethod
    def _null_captures(cls, value):
        return [] if value is None else value


class QRCode(PaycriticalModel):
    qr_code_id: str | None = None


class QRCodeStatus(PaycriticalModel):
    """QR code state; a freshly built instance reads as `Requested`."""

    payment_id: str | None = None
    payment_human_id: str | None = None
    status: str | None = "Requested"


class ValidationSummary(PaycriticalModel):
    """Body of a 400 response."""

    code: str
    description: str

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value
