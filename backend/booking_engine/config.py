# backend/booking_engine/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/booking.db"
    # Optional read replica for availability queries (staleness only affects UI hints)
    database_replica_url: str | None = None
    # Unset = no grid cache, no event queue
    redis_url: str | None = None

    db_lock_timeout_ms: int = 5000
    slot_cache_ttl_seconds: int = 86400  # 24 hours
    lifecycle_check_interval: int = 120  # seconds between lifecycle sweeps
    lifecycle_checker_enabled: bool = True
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        return _resolve_sqlite_path(self.database_url)

    @property
    def resolved_replica_url(self) -> str:
        if not self.database_replica_url:
            return self.resolved_database_url
        return _resolve_sqlite_path(self.database_replica_url)


def _resolve_sqlite_path(url: str) -> str:
    if url.startswith("sqlite:///./"):
        # Relative sqlite paths are anchored at the repository root
        relative_path = url.replace("sqlite:///./", "")
        absolute_path = BASE_DIR / relative_path
        return f"sqlite:///{absolute_path}"
    return url


settings = Settings()
