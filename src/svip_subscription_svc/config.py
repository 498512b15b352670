import os
from typing import List, Optional


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


class Settings:
    """
    Process-wide configuration, read once from the environment.

    Instances are treated as read-only and handed to the Stripe gateway and the
    database layer explicitly.
    """

    def __init__(self) -> None:
        self.environment = (_getenv("ENVIRONMENT", "development") or "development").lower()
        self.database_url = _getenv("DATABASE_URL", "sqlite:///./svip_subscription.db") or "sqlite:///./svip_subscription.db"
        self.db_auto_create = _getenv_bool("DB_AUTO_CREATE", default=True)
        self.stripe_api_key = _getenv("STRIPE_API_KEY")
        self.stripe_webhook_secret = _getenv("STRIPE_WEBHOOK_SECRET")
        self.cors_allow_origins = _getenv("CORS_ALLOW_ORIGINS")
        self.log_level = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def resolved_cors_origins(self) -> List[str]:
        raw = self.cors_allow_origins
        if raw is None or raw.strip() == "*":
            return ["*"]
        return [o.strip() for o in raw.split(",") if o.strip()]


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
