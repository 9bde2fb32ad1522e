from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    webhook_secret: str | None = None
    data_dir: str = "/data"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    ship24_api_key: str | None = None
    relay_url: str | None = None
    whatsapp_status_url: str | None = None
    http_timeout: float = 30.0

    relevance_window_ms: int = 60_000

    refresh_interval_hours: int = 1
    refresh_stale_hours: int = 6
    refresh_batch_size: int = 50
    courier_sync_interval_hours: int = 24

    model_config = {"env_prefix": "RASTRO_"}


settings = Settings()
