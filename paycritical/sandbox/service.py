"""In-memory Paycritical simulator.

Mimics the server behaviour the gateway client depends on: phone payments
that wait for the customer to accept, authorizations settled by partial
captures, and QR codes that stay empty (204) until someone pays them.

Magic inputs, for exercising client error paths:
- an `orderRef` starting with `force-error` makes the server fail with 500.
"""

import random
import string
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from paycritical.common.logging import logger
from paycritical.sandbox.state_machine import (
    CANCELLED,
    COMPLETED,
    REFUNDED,
    REJECTED_BY_USER,
    REQUESTED,
    InvalidTransition,
    validate_transition,
)

AUTHORIZATION = "Authorization"
CAPTURE = "Capture"
AUTHORIZATION_TTL = timedelta(minutes=5)


class SandboxError(Exception):
    """Failure rendered as a plain-text response body."""

    status_code = 400


class ValidationFailure(SandboxError):
    """Rendered as a ValidationSummary JSON body."""

    status_code = 400

    def __init__(self, code: str, description: str) -> None:
        super().__init__(description)
        self.code = code
        self.description = description


class NotAuthenticated(SandboxError):
    status_code = 401


class AccessDenied(SandboxError):
    status_code = 403


class NotFound(SandboxError):
    status_code = 404


class ServerFault(SandboxError):
    status_code = 500


@dataclass
class SandboxCapture:
    capture_id: str
    amount: Decimal
    date: str


@dataclass
class SandboxPayment:
    payment_id: str
    human_id: str
    amount: Decimal
    order_ref: str
    phone_number: str
    transaction_type: str
    expiration: str
    status: str = REQUESTED
    remaining_amount: Decimal = Decimal("0")
    captures: list[SandboxCapture] = field(default_factory=list)
    notifications_sent: int = 1


@dataclass
class SandboxQRCode:
    qr_code_id: str
    amount: Decimal
    order_ref: str
    payment_id: str | None = None


def _timestamp(moment: datetime) -> str:
    # Server format, millisecond precision and no offset: 2021-09-25T14:10:43.017
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]


def _human_id() -> str:
    return "".join(random.choices(string.ascii_uppercase + string.digits, k=8))


def parse_amount(raw: str) -> Decimal:
    """Validate a wire amount string."""

    try:
        amount = Decimal(raw)
    except (InvalidOperation, TypeError):
        raise ValidationFailure("InvalidAmount", f"'{raw}' is not a valid amount.") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationFailure("InvalidAmount", "The amount must be greater than zero.")
    return amount


class SandboxService:
    """Holds simulator state; safe to call from FastAPI's worker threads."""

    def __init__(self, api_key: str) -> None:
        self.api_key = api_key
        self._lock = threading.Lock()
        self._payments: dict[str, SandboxPayment] = {}
        self._qr_codes: dict[str, SandboxQRCode] = {}

    def authenticate(self, authorization: str | None) -> None:
        if not authorization:
            raise NotAuthenticated("Authorization has been denied for this request.")
        if authorization != self.api_key:
            raise AccessDenied("The provided credentials are not valid for this terminal.")

    def _check_order_ref(self, order_ref: str) -> None:
        if not order_ref:
            raise ValidationFailure("InvalidOrderRef", "The order reference is required.")
        if order_ref.lower().startswith("force-error"):
            event_id = str(uuid4())
            logger.error("sandbox forced server fault order_ref=%s event_id=%s", order_ref, event_id)
            raise ServerFault(f"An unexpected error occurred. EventId: {event_id}")

    def _payment(self, payment_id: str) -> SandboxPayment:
        payment = self._payments.get(payment_id)
        if payment is None:
            raise NotFound(f"Payment {payment_id} not found.")
        return payment

    def _transition(self, payment: SandboxPayment, new_status: str) -> None:
        try:
            validate_transition(payment.status, new_status)
        except InvalidTransition as exc:
            raise ValidationFailure("InvalidPaymentStatus", str(exc)) from exc
        logger.info(
            "sandbox payment transition payment_id=%s %s -> %s",
            payment.payment_id,
            payment.status,
            new_status,
        )
        payment.status = new_status

    def _new_payment(
        self,
        value: Decimal,
        order_ref: str,
        phone_number: str,
        transaction_type: str,
    ) -> SandboxPayment:
        """Build and store a payment; the caller holds the lock."""

        if not phone_number:
            raise ValidationFailure("InvalidPhoneNumber", "The phone number is required.")
        payment = SandboxPayment(
            payment_id=str(uuid4()),
            human_id=_human_id(),
            amount=value,
            order_ref=order_ref,
            phone_number=phone_number,
            transaction_type=transaction_type,
            expiration=_timestamp(datetime.now(timezone.utc) + AUTHORIZATION_TTL),
            remaining_amount=value if transaction_type == AUTHORIZATION else Decimal("0"),
        )
        self._payments[payment.payment_id] = payment
        logger.info("sandbox payment created payment_id=%s type=%s", payment.payment_id, transaction_type)
        return payment

    def create_payment(
        self,
        amount: str,
        order_ref: str,
        phone_number: str,
        transaction_type: str,
    ) -> SandboxPayment:
        """Register a phone payment waiting for the customer's approval."""

        value = parse_amount(amount)
        self._check_order_ref(order_ref)
        with self._lock:
            return self._new_payment(value, order_ref, phone_number, transaction_type)

    def get_payment(self, payment_id: str) -> SandboxPayment:
        with self._lock:
            return self._payment(payment_id)

    def get_authorization(self, payment_id: str) -> SandboxPayment:
        with self._lock:
            payment = self._payment(payment_id)
        if payment.transaction_type != AUTHORIZATION:
            raise ValidationFailure("NotAnAuthorization", "The payment is not an authorization.")
        return payment

    def resend(self, payment_id: str) -> None:
        with self._lock:
            payment = self._payment(payment_id)
            if payment.status != REQUESTED:
                raise ValidationFailure("InvalidPaymentStatus", "Only pending payments can be resent.")
            payment.notifications_sent += 1

    def cancel(self, payment_id: str) -> None:
        with self._lock:
            self._transition(self._payment(payment_id), CANCELLED)

    def refund(self, payment_id: str, amount: str) -> None:
        value = parse_amount(amount)
        with self._lock:
            payment = self._payment(payment_id)
            settled = payment.amount - payment.remaining_amount
            if value > settled:
                raise ValidationFailure("InvalidAmount", "The refund exceeds the settled amount.")
            self._transition(payment, REFUNDED)

    def capture(self, payment_id: str, amount: str) -> None:
        """Settle part of a completed authorization."""

        value = parse_amount(amount)
        with self._lock:
            payment = self._payment(payment_id)
            if payment.transaction_type != AUTHORIZATION:
                raise ValidationFailure("NotAnAuthorization", "Only authorizations can be captured.")
            if payment.status != COMPLETED:
                raise ValidationFailure("InvalidPaymentStatus", "The authorization was not accepted.")
            if value > payment.remaining_amount:
                raise ValidationFailure("InvalidAmount", "The capture exceeds the remaining amount.")
            payment.remaining_amount -= value
            payment.captures.append(
                SandboxCapture(
                    capture_id=str(uuid4()),
                    amount=value,
                    date=_timestamp(datetime.now(timezone.utc)),
                )
            )

    def accept(self, payment_id: str) -> SandboxPayment:
        """Simulate the customer approving the payment on their phone."""

        with self._lock:
            payment = self._payment(payment_id)
            self._transition(payment, COMPLETED)
            return payment

    def reject(self, payment_id: str) -> SandboxPayment:
        with self._lock:
            payment = self._payment(payment_id)
            self._transition(payment, REJECTED_BY_USER)
            return payment

    def create_qr_code(self, amount: str, order_ref: str) -> SandboxQRCode:
        value = parse_amount(amount)
        self._check_order_ref(order_ref)
        qr_code = SandboxQRCode(qr_code_id=str(uuid4()), amount=value, order_ref=order_ref)
        with self._lock:
            self._qr_codes[qr_code.qr_code_id] = qr_code
        return qr_code

    def qr_code_payment(self, qr_code_id: str) -> SandboxPayment | None:
        """Return the payment attached to a QR code, or None while nobody paid it."""

        with self._lock:
            qr_code = self._qr_codes.get(qr_code_id)
            if qr_code is None:
                raise NotFound(f"QR code {qr_code_id} not found.")
            if qr_code.payment_id is None:
                return None
            return self._payments[qr_code.payment_id]

    def pay_qr_code(self, qr_code_id: str, phone_number: str) -> SandboxPayment:
        """Simulate a customer scanning the code and paying it."""

        with self._lock:
            qr_code = self._qr_codes.get(qr_code_id)
            if qr_code is None:
                raise NotFound(f"QR code {qr_code_id} not found.")
            if qr_code.payment_id is not None:
                raise ValidationFailure("QRCodeAlreadyPaid", "The QR code was already used.")
            payment = self._new_payment(qr_code.amount, qr_code.order_ref, phone_number, CAPTURE)
            self._transition(payment, COMPLETED)
            qr_code.payment_id = payment.payment_id
            return payment
