"""Startup-time helpers for safe config logging."""

from paycritical.common.config import GatewaySettings
from paycritical.common.logging import logger

SECRET_MARKERS = ("key", "secret", "password", "token")


def _redact(name: str, value) -> str:
    """Hide credential-like settings; the Authorization value must never reach logs."""

    if value is None or value == "":
        return "<unset>"
    if any(marker in name.lower() for marker in SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def safe_config(config: GatewaySettings, keys: list[str]) -> dict[str, str]:
    return {key: _redact(key, getattr(config, key, None)) for key in keys}


def log_startup_config(service_name: str, config: GatewaySettings, keys: list[str]) -> None:
    """Log selected settings for quick troubleshooting."""

    logger.info("startup_config=%s", {"service": service_name, **safe_config(config, keys)})
