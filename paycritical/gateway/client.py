"""Paycritical POS API client.

One method per REST endpoint of the Paycritical payment API (sandbox
documentation: https://tr05sbx.paycritical.com/swagger/ui/index). Each call
is a single blocking round trip: build the typed payload, send it, validate
the status code, then deserialize (or discard) the body.

The HTTP transport is an injected `httpx.Client`; pass one to control
timeouts, proxies, or to substitute `httpx.MockTransport` in tests. The
client adds no retries, no timeouts and no idempotency keys of its own.
"""

from time import perf_counter

import httpx
from opentelemetry import trace
from pydantic import BaseModel, ConfigDict

from paycritical.common.config import GatewaySettings
from paycritical.common.config import settings as default_settings
from paycritical.common.logging import logger, operation_ctx, payment_id_ctx
from paycritical.common.metrics import gateway_request_duration_seconds, gateway_requests_total
from paycritical.gateway.errors import GatewayTransportError
from paycritical.gateway.models import Authorization, Payment, PaymentStatus, QRCode, QRCodeStatus
from paycritical.gateway.payloads import (
    Amount,
    PaymentAmountPayload,
    PaymentReferencePayload,
    PaymentRequestPayload,
    QRCodeRequestPayload,
    RequestPayload,
    TransactionType,
    format_amount,
)
from paycritical.gateway.validation import validate_response

tracer = trace.get_tracer("paycritical.gateway")


class GatewayConfig(BaseModel):
    """Credential and base URL, fixed for the lifetime of a gateway."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str


class PaycriticalGateway:
    """Synchronous façade over the Paycritical REST API."""

    def __init__(self, api_key: str, base_url: str, *, client: httpx.Client | None = None) -> None:
        """Create a gateway.

        Args:
            api_key: Full `Authorization` header value, scheme included
                (e.g. ``"Basic b09C..."``). Sent verbatim.
            base_url: API root, e.g. ``"https://tr05sbx.paycritical.com"``.
            client: Optional preconfigured ``httpx.Client``. When omitted the
                gateway creates and owns one with no timeout.
        """
        self._config = GatewayConfig(api_key=api_key, base_url=base_url.rstrip("/"))
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=None)

    @classmethod
    def from_settings(
        cls,
        config: GatewaySettings | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> "PaycriticalGateway":
        """Build a gateway from `PAYCRITICAL_*` settings."""

        config = config or default_settings
        if not config.api_key:
            raise ValueError("PAYCRITICAL_API_KEY is not configured")
        return cls(config.api_key, config.base_url, client=client)

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def api_key(self) -> str:
        return self._config.api_key

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def close(self) -> None:
        """Close the underlying transport if this gateway created it."""

        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "PaycriticalGateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": self._config.api_key,
        }

    def _send(
        self,
        operation: str,
        method: str,
        path: str,
        payload: RequestPayload | None = None,
        payment_id: str = "",
    ) -> httpx.Response:
        """Issue one request and run the status-code classifier on the answer."""

        url = f"{self._config.base_url}{path}"
        op_token = operation_ctx.set(operation)
        payment_token = payment_id_ctx.set(payment_id)
        try:
            with tracer.start_as_current_span(f"paycritical.{operation}") as span:
                span.set_attribute("http.method", method)
                span.set_attribute("http.route", path)
                start = perf_counter()
                try:
                    response = self._client.request(
                        method,
                        url,
                        headers=self._headers(),
                        json=payload.to_wire() if payload is not None else None,
                    )
                except httpx.TransportError as exc:
                    gateway_requests_total.labels(
                        operation=operation, method=method, status_code="transport_error"
                    ).inc()
                    logger.warning("gateway_transport_error url=%s error=%s", url, exc)
                    raise GatewayTransportError(str(exc), method=method, url=url) from exc
                finally:
                    gateway_request_duration_seconds.labels(operation=operation).observe(
                        max(0.0, perf_counter() - start)
                    )
                span.set_attribute("http.status_code", response.status_code)
                gateway_requests_total.labels(
                    operation=operation, method=method, status_code=str(response.status_code)
                ).inc()
                logger.debug("gateway_response status_code=%s", response.status_code)
                validate_response(response.status_code, response.text)
                return response
        finally:
            operation_ctx.reset(op_token)
            payment_id_ctx.reset(payment_token)

    def get_payment_status(self, payment_id: str) -> PaymentStatus:
        """GET /api/payment/{paymentId}."""

        response = self._send("get_payment_status", "GET", f"/api/payment/{payment_id}", payment_id=payment_id)
        return PaymentStatus.model_validate_json(response.content)

    def get_authorization_details(self, payment_id: str) -> Authorization:
        """GET /api/payment/{paymentId}/authorization."""

        response = self._send(
            "get_authorization_details",
            "GET",
            f"/api/payment/{payment_id}/authorization",
            payment_id=payment_id,
        )
        return Authorization.model_validate_json(response.content)

    def _create_payment(
        self,
        operation: str,
        amount: Amount,
        phone_number: str,
        order_ref: str,
        transaction_type: TransactionType,
    ) -> Payment:
        payload = PaymentRequestPayload(
            amount=format_amount(amount),
            order_ref=order_ref,
            phone_number=phone_number,
            transaction_type=transaction_type,
        )
        response = self._send(operation, "POST", "/api/payment", payload)
        return Payment.model_validate_json(response.content)

    def request_authorization(self, amount: Amount, phone_number: str, order_ref: str) -> Payment:
        """Reserve `amount` on the customer's phone wallet; capture it later."""

        return self._create_payment("request_authorization", amount, phone_number, order_ref, "Authorization")

    def request_payment(self, amount: Amount, phone_number: str, order_ref: str) -> Payment:
        """Request an immediately settled payment."""

        return self._create_payment("request_payment", amount, phone_number, order_ref, "Capture")

    def resend_payment(self, payment_id: str) -> None:
        """Re-send the payment notification to the customer's phone."""

        self._send(
            "resend_payment",
            "POST",
            "/api/payment/resend",
            PaymentReferencePayload(payment_id=payment_id),
            payment_id=payment_id,
        )

    def request_qr_code(self, amount: Amount, order_ref: str) -> QRCode:
        payload = QRCodeRequestPayload(amount=format_amount(amount), order_ref=order_ref)
        response = self._send("request_qr_code", "POST", "/api/qrcode", payload)
        return QRCode.model_validate_json(response.content)

    def get_qr_code_status(self, qr_code_id: str) -> QRCodeStatus:
        """GET /api/qrCode/{qrCodeId}.

        A 204 means no payment is attached to the code yet; it is reported as
        status `Requested`, the same value the server uses for a fresh code.
        """

        response = self._send("get_qr_code_status", "GET", f"/api/qrCode/{qr_code_id}")
        if response.status_code == 204:
            return QRCodeStatus()
        return QRCodeStatus.model_validate_json(response.content)

    def cancel_payment_request(self, payment_id: str) -> None:
        self._send(
            "cancel_payment_request",
            "PUT",
            "/api/payment/cancel",
            PaymentReferencePayload(payment_id=payment_id),
            payment_id=payment_id,
        )

    def refund_payment_request(self, payment_id: str, amount: Amount) -> None:
        self._send(
            "refund_payment_request",
            "PUT",
            "/api/payment/refund",
            PaymentAmountPayload(payment_id=payment_id, amount=format_amount(amount)),
            payment_id=payment_id,
        )

    def capture_payment_request(self, payment_id: str, amount: Amount) -> None:
        """Settle `amount` out of a completed authorization."""

        self._send(
            "capture_payment_request",
            "PUT",
            "/api/payment/capture",
            PaymentAmountPayload(payment_id=payment_id, amount=format_amount(amount)),
            payment_id=payment_id,
        )
