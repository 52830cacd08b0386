from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration.

    Built once by the entrypoint and passed to every component; there is no
    module-level instance.
    """

    # App
    app_env: str = "local"
    app_log_level: str = "INFO"

    # Telegram
    telegram_bot_token: str = Field(
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "BOT_TOKEN", "telegram_bot_token"),
    )
    telegram_file_base_url: str = "https://api.telegram.org/file"
    telegram_poll_timeout_s: int = 60

    # Voice download
    voice_download_timeout_s: float = 60.0
    voice_max_bytes: int = 20 * 1024 * 1024  # Bot API getFile limit

    # Redis (message bus)
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias=AliasChoices("REDIS_URL", "BUS_URL", "redis_url"),
    )

    # Redis Streams
    redis_stream_work: str = "voiceMsg"
    redis_stream_response: str = "transcribedMsg"
    redis_stream_maxlen: int = 1000

    # Transcript listener
    redis_response_consumer_group: str = "voice_relay"
    redis_response_consumer_name: str = "relay-1"
    listener_max_concurrency: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
