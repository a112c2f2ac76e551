"""Application configuration using Pydantic Settings."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Wrapped SOL and USDC mints
DEFAULT_WATCHED_TOKENS = (
    "So11111111111111111111111111111111111111112,"
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Telegram
    telegram_bot_token: str = ""
    admin_ids: str = ""  # comma-separated Telegram user ids

    # Sent-token store
    sent_tokens_dir: Path = Path("sent_tokens")
    sent_token_expiry_ms: int = Field(
        default=24 * 60 * 60 * 1000,
        gt=0,
        description="Age in milliseconds after which a sent-token record expires",
    )
    max_hashes_per_user: int = Field(default=6000, gt=0)
    cleanup_trigger_count: int = Field(default=3000, gt=0)
    cleanup_batch_size: int = Field(default=10, ge=0)

    # Advisory lock
    sent_token_lock_ms: int = Field(
        default=2000,
        gt=0,
        description="Age in milliseconds after which a lock marker is considered abandoned",
    )
    lock_poll_seconds: float = Field(default=0.02, ge=0)
    lock_settle_seconds: float = Field(default=0.01, ge=0)

    # Write retries
    write_retry_attempts: int = Field(default=3, ge=1, le=10)
    write_retry_backoff_seconds: float = Field(default=0.05, ge=0)

    # Token feed
    dexscreener_base_url: str = "https://api.dexscreener.com"
    watched_tokens: str = DEFAULT_WATCHED_TOKENS
    token_cache_ttl_seconds: int = Field(default=60, ge=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Notifier
    notify_interval_seconds: int = Field(default=30, ge=1)
    max_alerts_per_cycle: int = Field(
        default=5,
        ge=1,
        description="Maximum token alerts sent to one chat per notification cycle",
    )

    # Logging
    log_json: bool = True

    @property
    def admin_id_list(self) -> list[str]:
        """Get admin ids as a list of strings."""
        return [part.strip() for part in self.admin_ids.split(",") if part.strip()]

    @property
    def watched_token_list(self) -> list[str]:
        """Get watched token addresses as a list."""
        return [part.strip() for part in self.watched_tokens.split(",") if part.strip()]

    @field_validator("dexscreener_base_url", mode="before")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the DexScreener base URL.

        Args:
            v: The URL to validate

        Returns:
            str: The URL without a trailing slash

        Raises:
            ValueError: If the URL is empty or not http(s)
        """
        if not v:
            raise ValueError("dexscreener_base_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("dexscreener_base_url must start with http:// or https://")
        return v.rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


# Module-level singleton instance
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get application settings instance (singleton pattern)."""
    global _settings_instance
    if _settings_instance is None:
        try:
            _settings_instance = Settings()
        except Exception as e:
            msg = "Failed to initialize settings. Check environment variables and .env file."
            raise RuntimeError(msg) from e
    return _settings_instance
