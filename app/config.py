"""Application configuration via environment variables."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    enable_banking_app_id: Optional[str] = None
    enable_banking_private_key: Optional[str] = None  # base64-encoded PEM
    redirect_url: str = "http://localhost:3000/callback"
    frontend_url: str = "*"
    api_base_url: str = "https://api.enablebanking.com"

    upstream_timeout_seconds: float = 15.0
    assertion_ttl_seconds: int = 3600
    settlement_currency: str = "EUR"
    access_validity_days: int = 90
    status_max_retries: int = 2
    status_retry_base_delay: float = 0.5

    use_mock_upstream: bool = False
    mock_latency_ms: int = 100  # Simulated upstream latency

    static_dir: str = "public"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
