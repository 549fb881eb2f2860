from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Process configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Services file (YAML or JSON, absolute or relative to CWD)
    services_file: str = "services.yaml"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Logging
    log_level: str = "INFO"


settings = Settings()
