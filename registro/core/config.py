from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "postgresql://registro:registro@db:5432/registro"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://myapp.com,https://api.myapp.com"
    CORS_ORIGINS: str = "*"

    HISTORY_DAYS: int = 30
    DEFAULT_STATS_DAYS: int = 7

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


class ClientSettings(BaseSettings):
    """Device-side settings. Read from REGISTRO_* variables."""
    model_config = SettingsConfigDict(env_file=".env", env_prefix="REGISTRO_", extra="ignore")

    API_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api"
    LOCAL_DB_URL: str = "sqlite:///./registro_local.db"
    LOG_LEVEL: str = "INFO"

    SYNC_INTERVAL_SECONDS: float = 30.0
    REQUEST_TIMEOUT: float = 10.0
    # Connectivity probe must answer fast or the device counts as offline.
    PROBE_TIMEOUT: float = 2.0


settings = Settings()
