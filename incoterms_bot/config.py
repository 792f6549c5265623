"""Application settings — loaded from environment variables / .env file."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Telegram
    BOT_TOKEN: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Expert contact shown next to every recommendation
    CONTACT_PHONE: str = "833-782-7628"
    CONTACT_EXTENSION: str = "1"

    # Throttling
    RATE_LIMIT_EVENTS: int = 10
    RATE_LIMIT_SECONDS: int = 5

    # Health-check HTTP server
    HEALTH_SERVER_ENABLED: bool = True
    PORT: int = 10000

    @property
    def contact_display(self) -> str:
        """Human-readable phone, e.g. ``833-782-7628 Ext. 1``."""
        if self.CONTACT_EXTENSION:
            return f"{self.CONTACT_PHONE} Ext. {self.CONTACT_EXTENSION}"
        return self.CONTACT_PHONE

    @property
    def contact_tel(self) -> str:
        """Dialable form with the extension as a pause, e.g. ``8337827628,1``."""
        digits = "".join(ch for ch in self.CONTACT_PHONE if ch.isdigit() or ch == "+")
        if self.CONTACT_EXTENSION:
            return f"{digits},{self.CONTACT_EXTENSION}"
        return digits

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
