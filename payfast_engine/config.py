"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings

MODES = ("sandbox", "production")


class Settings(BaseSettings):
    salt: str = ""
    salt_index: int = 1
    merchant_id: str = ""
    callback_url: str = "http://localhost:9000"
    redirect_url: str = "https://localhost:8000"
    redirect_mode: str = "REDIRECT"
    mode: str = "sandbox"
    sandbox_base_url: str = "https://api-preprod.payfast.com/apis/pg-sandbox"
    production_base_url: str = "https://api.payfast.com/apis/hermes"
    http_timeout_seconds: float = 10.0
    enabled_debug_logging: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./payfast_engine.db"

    model_config = {"env_prefix": "PAYFAST_", "env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def base_url(self) -> str:
        """Gateway base URL for the configured operating mode."""
        mode = self.mode.strip().lower()
        if mode == "production":
            return self.production_base_url
        if mode == "sandbox":
            return self.sandbox_base_url
        raise ValueError(f"Unknown PayFast mode: {self.mode!r} (expected one of {', '.join(MODES)})")


settings = Settings()
