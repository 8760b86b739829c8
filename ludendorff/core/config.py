from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Ludendorff Functions"
    app_env: str = "local"
    app_version: str = "0.1.0"
    database_url: str = "sqlite+pysqlite:///./ludendorff.db"
    jwt_secret: str = "replace-me"
    jwt_algorithm: str = "HS256"
    algolia_app_id: str = ""
    algolia_api_key: str = ""
    algolia_host: str | None = None
    search_timeout_seconds: float = 10.0
    mail_source: str = ""
    mail_passkey: str = ""
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 465
    audit_log_collection: str = "logs"
    audit_id_length: int = 20
    metrics_enabled: bool = False
    otel_enabled: bool = False
    otel_service_name: str = "ludendorff-functions"
    otel_exporter_endpoint: str | None = None
    otel_console_exporter: bool = False

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()
