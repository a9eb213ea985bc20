"""Command-line access to every Paycritical gateway operation.

Examples:
    paycritical request-payment 1.25 +351911111111 order-42
    paycritical qr-status f6530724-b143-4df6-8a10-b346b435e7b0
    paycritical --base-url http://localhost:59605 cancel <payment-id>

Credentials come from `PAYCRITICAL_API_KEY` / `PAYCRITICAL_BASE_URL` unless
overridden on the command line.
"""

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation

import httpx
from pydantic import BaseModel

from paycritical.common.config import settings
from paycritical.common.logging import configure_logging
from paycritical.common.startup import log_startup_config
from paycritical.common.tracing import setup_tracing, tracing_enabled
from paycritical.gateway.client import PaycriticalGateway
from paycritical.gateway.errors import ApiError, ApiValidationError, GatewayTransportError

EXIT_API_ERROR = 1
EXIT_TRANSPORT_ERROR = 2


def amount_arg(text: str) -> Decimal:
    """Keep the amount exactly as typed; `1.50` goes on the wire as `"1.50"`."""

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid amount: {text!r}") from None
    if not amount.is_finite():
        raise argparse.ArgumentTypeError(f"invalid amount: {text!r}")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paycritical", description="Call the Paycritical POS API.")
    parser.add_argument("--api-key", default=None, help="Authorization header value, e.g. 'Basic ...'")
    parser.add_argument("--base-url", default=None, help="API root URL")
    parser.add_argument("--log-level", default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    cmd = sub.add_parser("payment-status", help="Show the status of a payment")
    cmd.add_argument("payment_id")

    cmd = sub.add_parser("authorization", help="Show authorization details and captures")
    cmd.add_argument("payment_id")

    for name, help_text in [
        ("request-authorization", "Reserve an amount on a phone wallet"),
        ("request-payment", "Request an immediately settled phone payment"),
    ]:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("amount", type=amount_arg)
        cmd.add_argument("phone_number")
        cmd.add_argument("order_ref")

    cmd = sub.add_parser("resend", help="Re-send the payment notification")
    cmd.add_argument("payment_id")

    cmd = sub.add_parser("request-qr", help="Create a QR code payment request")
    cmd.add_argument("amount", type=amount_arg)
    cmd.add_argument("order_ref")

    cmd = sub.add_parser("qr-status", help="Show the status of a QR code")
    cmd.add_argument("qr_code_id")

    cmd = sub.add_parser("cancel", help="Cancel a pending payment")
    cmd.add_argument("payment_id")

    for name, help_text in [("refund", "Refund a completed payment"), ("capture", "Capture an authorization")]:
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("payment_id")
        cmd.add_argument("amount", type=amount_arg)
    return parser


def run_command(gateway: PaycriticalGateway, args: argparse.Namespace) -> BaseModel | None:
    """Dispatch one parsed command to the gateway."""

    command = args.command
    if command == "payment-status":
        return gateway.get_payment_status(args.payment_id)
    if command == "authorization":
        return gateway.get_authorization_details(args.payment_id)
    if command == "request-authorization":
        return gateway.request_authorization(args.amount, args.phone_number, args.order_ref)
    if command == "request-payment":
        return gateway.request_payment(args.amount, args.phone_number, args.order_ref)
    if command == "resend":
        return gateway.resend_payment(args.payment_id)
    if command == "request-qr":
        return gateway.request_qr_code(args.amount, args.order_ref)
    if command == "qr-status":
        return gateway.get_qr_code_status(args.qr_code_id)
    if command == "cancel":
        return gateway.cancel_payment_request(args.payment_id)
    if command == "refund":
        return gateway.refund_payment_request(args.payment_id, args.amount)
    if command == "capture":
        return gateway.capture_payment_request(args.payment_id, args.amount)
    raise ValueError(f"unknown command {command}")


def describe_error(exc: ApiError) -> dict:
    details = {"kind": exc.kind.value, "status_code": exc.status_code}
    if isinstance(exc, ApiValidationError):
        details.update(code=exc.code, description=exc.description)
    else:
        details["detail"] = exc.detail
    return details


def main(argv: list[str] | None = None, *, client: httpx.Client | None = None) -> int:
    """CLI entrypoint; returns the process exit code."""

    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, stream=sys.stderr)
    if tracing_enabled():
        setup_tracing(settings.service_name)
    log_startup_config(settings.service_name, settings, ["base_url", "api_key", "log_level"])

    api_key = args.api_key or settings.api_key
    if not api_key:
        print("No API key: set PAYCRITICAL_API_KEY or pass --api-key", file=sys.stderr)
        return EXIT_API_ERROR

    with PaycriticalGateway(api_key, args.base_url or settings.base_url, client=client) as gateway:
        try:
            result = run_command(gateway, args)
        except ApiError as exc:
            print(json.dumps(describe_error(exc)), file=sys.stderr)
            return EXIT_API_ERROR
        except GatewayTransportError as exc:
            print(json.dumps({"kind": exc.kind.value, "detail": str(exc)}), file=sys.stderr)
            return EXIT_TRANSPORT_ERROR

    if result is None:
        print(json.dumps({"ok": True}))
    else:
        print(result.model_dump_json(by_alias=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
