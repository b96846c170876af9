from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Provider default keys (used when the caller supplies none)
    pockgo_api_key: str = ""
    modelscope_api_key: str = ""
    google_gemini_api_key: str = ""
    openrouter_api_key: str = ""

    # Default models
    default_image_model: str = "seedream-4.0"
    default_chat_model: str = "deepseek/deepseek-chat-v3.1:free"

    # Outbound calls
    request_timeout_seconds: float = 30.0
    queue_max_concurrent: int = 3

    # Rate limits (sliding window, per logical action)
    image_generation_rpm: int = 10
    chat_rpm: int = 20
    image_download_rpm: int = 30
    rate_limit_window_seconds: float = 60.0

    # Response cache
    cache_max_size: int = 100
    cache_ttl_seconds: float = 300.0

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.queue_max_concurrent < 1:
        errors.append("QUEUE_MAX_CONCURRENT must be at least 1")

    if settings.request_timeout_seconds <= 0:
        errors.append("REQUEST_TIMEOUT_SECONDS must be positive")

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
