from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    mongodb_uri: str
    database_url: str = "sqlite+aiosqlite:///./realms.db"
    gor_universe_secret_key: str | None = None
    arkana_universe_secret_key: str | None = None
    signature_window_minutes: int = 5
    catalog_cache_ttl_seconds: int = 300
    catalog_data_dir: str | None = None
    cors_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        extra="ignore",
    )

    def universe_secret(self, universe: str) -> str | None:
        key = (universe or "").strip().lower()
        if key == "gor":
            return self.gor_universe_secret_key
        if key == "arkana":
            return self.arkana_universe_secret_key
        return None

settings = Settings()
