"""Central environment-driven settings for the gateway client and sandbox.

Values come from `PAYCRITICAL_*` environment variables or a local `.env`
file (see `.env.example`). Nothing here is required to import the library.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    api_key: str = ""
    base_url: str = "https://tr05sbx.paycritical.com"
    service_name: str = "paycritical-client"
    log_level: str = "INFO"
    otel_exporter_otlp_endpoint: str | None = None
    sandbox_api_key: str = "Basic c2FuZGJveDpzYW5kYm94"
    model_config = SettingsConfigDict(env_prefix="PAYCRITICAL_", env_file=".env", extra="ignore")


settings = GatewaySettings()
