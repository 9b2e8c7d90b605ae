import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        currency_symbol: str,
        log_level: str,
        auto_create_schema: bool,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.currency_symbol = currency_symbol
        self.log_level = log_level
        self.auto_create_schema = auto_create_schema


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("SPENDWISE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "spendwise.db"
    database_url = os.getenv("SPENDWISE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("SPENDWISE_TIMEZONE", "UTC")
    currency_symbol = os.getenv("SPENDWISE_CURRENCY_SYMBOL", "$")
    log_level = os.getenv("SPENDWISE_LOG_LEVEL", "INFO").upper()
    auto_create_schema = _env_flag("SPENDWISE_AUTO_CREATE_SCHEMA", True)
    return Settings(
        database_url=database_url,
        timezone=timezone,
        currency_symbol=currency_symbol,
        log_level=log_level,
        auto_create_schema=auto_create_schema,
    )
