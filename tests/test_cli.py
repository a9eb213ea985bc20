"""CLI dispatch, output and exit codes."""

import json

import httpx
import pytest

from paycritical import cli

API_KEY = "Basic dGVybWluYWw6c2VjcmV0"


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)


def mock_client(status_code: int, **kwargs) -> tuple[httpx.Client, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, **kwargs)

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


def run(argv: list[str], client: httpx.Client) -> int:
    return cli.main(["--api-key", API_KEY, "--base-url", "http://pos.test", *argv], client=client)


def test_request_payment_prints_wire_json(capsys):
    client, seen = mock_client(201, json={"paymentId": "p-1", "status": "Requested"})

    code = run(["request-payment", "1.25", "+351911111111", "order-1"], client)

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"paymentId": "p-1", "status": "Requested"}
    body = json.loads(seen[0].content)
    assert body["amount"] == "1.25"
    assert body["transactionType"] == "Capture"
    assert seen[0].headers["Authorization"] == API_KEY


def test_qr_status_no_content(capsys):
    client, seen = mock_client(204)

    assert run(["qr-status", "q-1"], client) == 0

    assert json.loads(capsys.readouterr().out)["status"] == "Requested"
    assert seen[0].url.path == "/api/qrCode/q-1"


def test_capture_prints_ok(capsys):
    client, seen = mock_client(200)

    assert run(["capture", "p-1", "0.5"], client) == 0

    assert json.loads(capsys.readouterr().out) == {"ok": True}
    assert seen[0].method == "PUT"
    assert json.loads(seen[0].content) == {"paymentId": "p-1", "amount": "0.5"}


def test_validation_error_exit_code(capsys):
    client, _ = mock_client(400, json={"code": "InvalidAmount", "description": "Too small."})

    assert run(["refund", "p-1", "0.01"], client) == cli.EXIT_API_ERROR

    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error == {"kind": "validation", "status_code": 400, "code": "InvalidAmount", "description": "Too small."}


def test_forbidden_error_exit_code(capsys):
    client, _ = mock_client(403, text="forbidden-text")

    assert run(["cancel", "p-1"], client) == cli.EXIT_API_ERROR

    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["kind"] == "forbidden"
    assert error["detail"] == "forbidden-text"


def test_transport_error_exit_code(capsys):
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.Client(transport=httpx.MockTransport(refuse))

    assert run(["payment-status", "p-1"], client) == cli.EXIT_TRANSPORT_ERROR

    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert error["kind"] == "transport"


def test_missing_api_key(monkeypatch, capsys):
    monkeypatch.setattr(cli.settings, "api_key", "")
    client, seen = mock_client(200)

    assert cli.main(["resend", "p-1"], client=client) == cli.EXIT_API_ERROR

    assert seen == []
    assert "PAYCRITICAL_API_KEY" in capsys.readouterr().err


def test_parser_rejects_non_numeric_amount():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["request-qr", "abc", "AAAA"])
