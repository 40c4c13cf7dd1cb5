from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from feedsync.exceptions import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    SHOPIFY_STORE: str | None = None
    SHOPIFY_STORE_DOMAIN: str | None = None  # legacy name for SHOPIFY_STORE
    SHOPIFY_ADMIN_TOKEN: str | None = None
    SHOPIFY_API_VERSION: str = "2024-07"
    SHOPIFY_LOCATION_ID: int | None = None
    SHOPIFY_TIMEOUT: float = 60.0
    SHOPIFY_RATE_PER_SECOND: float = 2.0
    SHOPIFY_MAX_RETRIES: int = 3

    STOREGEST_BASE_URL: str = "https://bonaccorsobrand.storegest.it/API/"
    STOREGEST_DOMAIN: str | None = None
    STOREGEST_APIKEY: str | None = None
    STOREGEST_TIMEOUT: float = 180.0

    STOCK_SYNC_WINDOW_MINUTES: int = 15
    ENABLE_SCHEDULER: bool = False
    STOCK_SYNC_INTERVAL_MINUTES: int = 15

    LOG_LEVEL: str = "INFO"

    @property
    def shop_domain(self) -> str | None:
        return self.SHOPIFY_STORE or self.SHOPIFY_STORE_DOMAIN

    def require_shopify(self) -> None:
        missing = []
        if not self.shop_domain:
            missing.append("SHOPIFY_STORE (or SHOPIFY_STORE_DOMAIN)")
        if not self.SHOPIFY_ADMIN_TOKEN:
            missing.append("SHOPIFY_ADMIN_TOKEN")
        if missing:
            raise ConfigurationError(f"Missing settings: {', '.join(missing)}", missing)

    def require_location(self) -> None:
        if not self.SHOPIFY_LOCATION_ID:
            raise ConfigurationError("Missing settings: SHOPIFY_LOCATION_ID", ["SHOPIFY_LOCATION_ID"])

    def require_storegest(self) -> None:
        missing = [
            name for name in ("STOREGEST_DOMAIN", "STOREGEST_APIKEY")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(f"Missing settings: {', '.join(missing)}", missing)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
