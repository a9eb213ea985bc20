"""HTTP surface of the Paycritical sandbox simulator.

Serves the same routes as the real POS API so `PaycriticalGateway` can be
pointed at it, plus `/simulator/*` routes that play the customer's part
(accepting, rejecting or paying). Run with
`uvicorn paycritical.sandbox.main:app --port 59605`.
"""

from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import APIRouter, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from paycritical.common.config import settings
from paycritical.common.logging import configure_logging, logger
from paycritical.common.metrics import metrics_response, sandbox_requests_total
from paycritical.common.startup import log_startup_config
from paycritical.common.tracing import instrument_app, setup_tracing, tracing_enabled
from paycritical.gateway.payloads import (
    PaymentAmountPayload,
    PaymentReferencePayload,
    PaymentRequestPayload,
    QRCodeRequestPayload,
)
from paycritical.sandbox.service import SandboxError, SandboxPayment, SandboxService, ValidationFailure


class QRCodePaymentRequest(BaseModel):
    """Payload accepted by `POST /simulator/qrcode/{id}/pay`."""

    phone_number: str = "+351911111111"


def get_service(request: Request) -> SandboxService:
    return request.app.state.service


def require_authorization(
    request: Request,
    authorization: str | None = Header(default=None),
) -> None:
    """Reject requests without the sandbox terminal credential."""

    get_service(request).authenticate(authorization)


def _payment_status(payment: SandboxPayment) -> dict:
    return {
        "paymentId": payment.payment_id,
        "status": payment.status,
        "transactionType": payment.transaction_type,
        "amount": float(payment.amount),
    }


api = APIRouter(prefix="/api", dependencies=[Depends(require_authorization)])
simulator = APIRouter(prefix="/simulator")


@api.get("/payment/{payment_id}")
def get_payment_status(payment_id: str, service: SandboxService = Depends(get_service)):
    """Current status of one payment."""

    return _payment_status(service.get_payment(payment_id))


@api.get("/payment/{payment_id}/authorization")
def get_authorization(payment_id: str, service: SandboxService = Depends(get_service)):
    """Remaining amount and captures of an authorization."""

    payment = service.get_authorization(payment_id)
    return {
        "status": payment.status,
        "expiration": payment.expiration,
        "remainingAmount": float(payment.remaining_amount),
        "captures": [
            {"captureId": c.capture_id, "amount": float(c.amount), "date": c.date}
            for c in payment.captures
        ],
    }


@api.post("/payment", status_code=201)
def create_payment(req: PaymentRequestPayload, service: SandboxService = Depends(get_service)):
    """Create a phone payment or authorization in `Requested`."""

    payment = service.create_payment(req.amount, req.order_ref, req.phone_number, req.transaction_type)
    return {"paymentId": payment.payment_id, "status": payment.status}


@api.post("/payment/resend", status_code=204)
def resend_payment(req: PaymentReferencePayload, service: SandboxService = Depends(get_service)):
    service.resend(req.payment_id)
    return Response(status_code=204)


@api.put("/payment/cancel", status_code=204)
def cancel_payment(req: PaymentReferencePayload, service: SandboxService = Depends(get_service)):
    service.cancel(req.payment_id)
    return Response(status_code=204)


@api.put("/payment/refund", status_code=204)
def refund_payment(req: PaymentAmountPayload, service: SandboxService = Depends(get_service)):
    service.refund(req.payment_id, req.amount)
    return Response(status_code=204)


@api.put("/payment/capture", status_code=204)
def capture_payment(req: PaymentAmountPayload, service: SandboxService = Depends(get_service)):
    service.capture(req.payment_id, req.amount)
    return Response(status_code=204)


@api.post("/qrcode", status_code=201)
def create_qr_code(req: QRCodeRequestPayload, service: SandboxService = Depends(get_service)):
    qr_code = service.create_qr_code(req.amount, req.order_ref)
    return {"qrCodeId": qr_code.qr_code_id}


@api.get("/qrCode/{qr_code_id}")
def get_qr_code_status(qr_code_id: str, service: SandboxService = Depends(get_service)):
    """204 until a customer pays the code."""

    payment = service.qr_code_payment(qr_code_id)
    if payment is None:
        return Response(status_code=204)
    return {"paymentId": payment.payment_id, "paymentHumanId": payment.human_id, "status": payment.status}


@simulator.post("/payment/{payment_id}/accept")
def accept_payment(payment_id: str, service: SandboxService = Depends(get_service)):
    return _payment_status(service.accept(payment_id))


@simulator.post("/payment/{payment_id}/reject")
def reject_payment(payment_id: str, service: SandboxService = Depends(get_service)):
    return _payment_status(service.reject(payment_id))


@simulator.post("/qrcode/{qr_code_id}/pay")
def pay_qr_code(
    qr_code_id: str,
    req: QRCodePaymentRequest | None = None,
    service: SandboxService = Depends(get_service),
):
    payment = service.pay_qr_code(qr_code_id, (req or QRCodePaymentRequest()).phone_number)
    return _payment_status(payment)


async def sandbox_error_handler(_: Request, exc: SandboxError) -> Response:
    """Render simulator failures the way the real API does."""

    if isinstance(exc, ValidationFailure):
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "description": exc.description},
        )
    return PlainTextResponse(str(exc), status_code=exc.status_code)


async def request_validation_handler(_: Request, exc: RequestValidationError) -> Response:
    """Malformed bodies are 400 ValidationSummary responses, not FastAPI's 422."""

    first = exc.errors()[0] if exc.errors() else {}
    field_name = ".".join(str(part) for part in first.get("loc", ())[1:]) or "body"
    return JSONResponse(
        status_code=400,
        content={"code": "InvalidRequest", "description": f"{field_name}: {first.get('msg', 'invalid')}"},
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Configure process-wide logging and tracing when the server starts."""

    configure_logging()
    if tracing_enabled():
        setup_tracing("paycritical-sandbox")
    log_startup_config(
        "paycritical-sandbox",
        settings,
        ["log_level", "otel_exporter_otlp_endpoint", "sandbox_api_key"],
    )
    yield


def create_app(service: SandboxService | None = None) -> FastAPI:
    """Build a simulator app around `service` (a fresh one when omitted)."""

    app = FastAPI(title="Paycritical Sandbox", lifespan=lifespan)
    app.state.service = service or SandboxService(settings.sandbox_api_key)
    app.include_router(api)
    app.include_router(simulator)
    app.add_exception_handler(SandboxError, sandbox_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        """Record request count for every HTTP call."""

        start = perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            route_obj = request.scope.get("route")
            route = getattr(route_obj, "path", None) or request.url.path
            sandbox_requests_total.labels(
                route=route,
                method=request.method,
                status_code=str(status_code),
            ).inc()
            logger.debug(
                "sandbox_request method=%s route=%s status_code=%s elapsed_ms=%.1f",
                request.method,
                route,
                status_code,
                (perf_counter() - start) * 1000,
            )

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health probe endpoint."""

        return {"ok": True}

    if tracing_enabled():
        instrument_app(app)
    return app


app = create_app()
