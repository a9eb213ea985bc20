"""End-to-end runs of PaycriticalGateway against the in-memory sandbox."""

import threading

import pytest
from fastapi.testclient import TestClient

from paycritical.gateway.client import PaycriticalGateway
from paycritical.gateway.errors import (
    ApiValidationError,
    ForbiddenError,
    GenericApiError,
    InternalServerError,
    UnauthorizedError,
)
from paycritical.sandbox.main import create_app
from paycritical.sandbox.service import SandboxService, ValidationFailure

SANDBOX_KEY = "Basic c2FuZGJveDpzYW5kYm94"
PHONE = "+351911111111"


@pytest.fixture
def http():
    return TestClient(create_app(SandboxService(SANDBOX_KEY)))


@pytest.fixture
def gateway(http):
    return PaycriticalGateway(SANDBOX_KEY, "http://testserver", client=http)


def test_qr_code_flow(gateway, http):
    """A new code reads as Requested until the simulator pays it."""

    qr_code = gateway.request_qr_code(0.1, "AAAA")
    assert qr_code.qr_code_id

    assert gateway.get_qr_code_status(qr_code.qr_code_id).status == "Requested"

    paid = http.post(f"/simulator/qrcode/{qr_code.qr_code_id}/pay", json={"phone_number": PHONE})
    assert paid.status_code == 200

    status = gateway.get_qr_code_status(qr_code.qr_code_id)
    assert status.status == "Completed"
    assert status.payment_id == paid.json()["paymentId"]
    assert len(status.payment_human_id) == 8


def test_qr_code_can_only_be_paid_once(gateway, http):
    qr_code = gateway.request_qr_code(2, "order-qr")
    http.post(f"/simulator/qrcode/{qr_code.qr_code_id}/pay")

    again = http.post(f"/simulator/qrcode/{qr_code.qr_code_id}/pay")

    assert again.status_code == 400
    assert again.json()["code"] == "QRCodeAlreadyPaid"


def test_concurrent_qr_code_payments_settle_once():
    """Two customers scanning the same code at once produce a single payment."""

    service = SandboxService(SANDBOX_KEY)
    qr_code = service.create_qr_code("3.5", "order-race")
    start = threading.Barrier(2)
    paid, refused = [], []

    def pay():
        start.wait()
        try:
            paid.append(service.pay_qr_code(qr_code.qr_code_id, PHONE))
        except ValidationFailure as exc:
            refused.append(exc.code)

    workers = [threading.Thread(target=pay) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert len(paid) == 1
    assert refused == ["QRCodeAlreadyPaid"]
    assert service.qr_code_payment(qr_code.qr_code_id) is paid[0]


def test_request_payment_starts_requested(gateway):
    payment = gateway.request_payment(1.25, PHONE, "order-1")

    assert payment.status == "Requested"
    status = gateway.get_payment_status(payment.payment_id)
    assert status.status == "Requested"
    assert status.transaction_type == "Capture"
    assert status.amount == 1.25


def test_resend_and_cancel_pending_payment(gateway):
    payment = gateway.request_payment(1.25, PHONE, "order-2")

    gateway.resend_payment(payment.payment_id)
    gateway.cancel_payment_request(payment.payment_id)

    assert gateway.get_payment_status(payment.payment_id).status == "Cancelled"
    with pytest.raises(ApiValidationError) as exc_info:
        gateway.resend_payment(payment.payment_id)
    assert exc_info.value.code == "InvalidPaymentStatus"


def test_refund_after_customer_accepts(gateway, http):
    payment = gateway.request_payment(1.25, PHONE, "order-3")
    with pytest.raises(ApiValidationError):
        gateway.refund_payment_request(payment.payment_id, 1.25)

    http.post(f"/simulator/payment/{payment.payment_id}/accept")
    gateway.refund_payment_request(payment.payment_id, 1.25)

    assert gateway.get_payment_status(payment.payment_id).status == "Refunded"


def test_authorization_capture_flow(gateway, http):
    authorization = gateway.request_authorization(1.23, PHONE, "order-4")
    http.post(f"/simulator/payment/{authorization.payment_id}/accept")

    gateway.capture_payment_request(authorization.payment_id, 1.0)
    gateway.capture_payment_request(authorization.payment_id, 0.23)

    details = gateway.get_authorization_details(authorization.payment_id)
    assert details.status == "Completed"
    assert details.remaining_amount == 0.0
    assert [c.amount for c in details.captures] == [1.0, 0.23]
    status = gateway.get_payment_status(authorization.payment_id)
    assert status.transaction_type == "Authorization"


def test_capture_more_than_remaining_is_invalid(gateway, http):
    authorization = gateway.request_authorization(1.23, PHONE, "order-5")
    http.post(f"/simulator/payment/{authorization.payment_id}/accept")

    with pytest.raises(ApiValidationError) as exc_info:
        gateway.capture_payment_request(authorization.payment_id, 2)
    assert exc_info.value.code == "InvalidAmount"


def test_rejected_authorization_details(gateway, http):
    authorization = gateway.request_authorization(1.23, PHONE, "order-6")
    http.post(f"/simulator/payment/{authorization.payment_id}/reject")

    details = gateway.get_authorization_details(authorization.payment_id)

    assert details.status == "RejectedByUser"
    assert details.remaining_amount == 1.23
    assert details.captures == []
    assert len(details.expiration) == len("2021-09-25T14:10:43.017")


def test_invalid_amount_is_a_validation_error(gateway):
    with pytest.raises(ApiValidationError) as exc_info:
        gateway.request_payment(-1, PHONE, "order-7")
    assert exc_info.value.code == "InvalidAmount"


def test_malformed_body_is_a_validation_error(http):
    response = http.post(
        "/api/payment",
        headers={"Authorization": SANDBOX_KEY},
        json={"amount": "1.0", "orderRef": "x"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "InvalidRequest"


def test_missing_credential_is_unauthorized(http):
    gateway = PaycriticalGateway("", "http://testserver", client=http)

    with pytest.raises(UnauthorizedError) as exc_info:
        gateway.get_payment_status("p-1")
    assert exc_info.value.detail == "Authorization has been denied for this request."


def test_wrong_credential_is_forbidden(http):
    gateway = PaycriticalGateway("Basic d3Jvbmc6d3Jvbmc=", "http://testserver", client=http)

    with pytest.raises(ForbiddenError):
        gateway.resend_payment("p-1")


def test_unknown_payment_is_generic_error(gateway):
    with pytest.raises(GenericApiError) as exc_info:
        gateway.get_payment_status("does-not-exist")
    assert exc_info.value.status_code == 404
    assert "does-not-exist" in exc_info.value.detail


def test_forced_server_error_carries_event_id(gateway):
    with pytest.raises(InternalServerError) as exc_info:
        gateway.request_qr_code(1, "force-error-1")
    assert "EventId:" in exc_info.value.detail


def test_health_and_metrics(http):
    assert http.get("/health").json() == {"ok": True}
    assert "paycritical_sandbox_requests_total" in http.get("/metrics").text
