from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str | List[str]) -> List[str]:
    if isinstance(value, list):
        return value
    return [v.strip() for v in str(value).split(",") if v and v.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DOCSENSE_",
        extra="ignore",
    )

    app_name: str = "DocSense API"
    database_url: str = "sqlite:///./docsense.db"
    db_echo: bool = False

    # values must come from environment/.env in production
    jwt_secret: str = "change-me"
    jwt_issuer: str = "docsense"
    access_token_exp_minutes: int = 15
    refresh_token_exp_minutes: int = 7 * 24 * 60

    pending_request_ttl_days: int = 7
    download_token_ttl_hours: int = 24

    upload_dir: str = "./uploads"
    max_upload_bytes: int = 50 * 1024 * 1024

    superuser_username: str = "superuser"
    superuser_email: str = "admin@example.com"
    superuser_password: str = "ChangeMe123!"

    cors_origins_raw: str = "http://localhost:5173"
    enable_docs: bool = True
    log_level: str = "INFO"

    @property
    def cors_origins(self) -> List[str]:
        parsed = _split_csv(self.cors_origins_raw)
        return parsed or ["http://localhost:5173"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
