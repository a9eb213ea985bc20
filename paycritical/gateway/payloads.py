"""Request bodies, one model per endpoint shape.

Amounts travel as decimal strings (`"1.23"`), never as JSON numbers.
"""

import math
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Amount = int | float | Decimal
TransactionType = Literal["Authorization", "Capture"]


def format_amount(amount: Amount) -> str:
    """Render an amount the way the API expects it on the wire.

    Floats and ints use the shortest round-trip float form, so `1.23` gives
    `"1.23"` and `5` gives `"5.0"`. Decimals keep their own string form.
    """

    if isinstance(amount, bool):
        raise ValueError(f"amount must be a number, got {amount!r}")
    if not isinstance(amount, (int, float, Decimal)):
        raise TypeError(f"amount must be a number, got {type(amount).__name__}")
    if isinstance(amount, Decimal):
        if not amount.is_finite():
            raise ValueError(f"amount must be finite, got {amount}")
        return str(amount)
    value = float(amount)
    if not math.isfinite(value):
        raise ValueError(f"amount must be finite, got {amount}")
    return repr(value)


class RequestPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)


class PaymentRequestPayload(RequestPayload):
    """`POST /api/payment`."""

    amount: str
    order_ref: str
    phone_number: str
    transaction_type: TransactionType


class QRCodeRequestPayload(RequestPayload):
    """`POST /api/qrcode`."""

    amount: str
    order_ref: str


class PaymentReferencePayload(RequestPayload):
    """`POST /api/payment/resend` and `PUT /api/payment/cancel`."""

    payment_id: str


class PaymentAmountPayload(RequestPayload):
    """`PUT /api/payment/refund` and `PUT /api/payment/capture`."""

    payment_id: str
    amount: str
