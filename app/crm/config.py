import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    log_level: str

    customer_api_prefix: str
    default_page_size: int
    max_page_size: int
    seed_demo_customers: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer (got {raw!r}).")


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name).lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///crm.db"),
        log_level=_getenv("LOG_LEVEL", "INFO").upper(),
        customer_api_prefix=_getenv("CUSTOMER_API_PREFIX", "/educama/v1/customers").rstrip("/"),
        default_page_size=_getenv_int("DEFAULT_PAGE_SIZE", 20),
        max_page_size=_getenv_int("MAX_PAGE_SIZE", 2000),
        seed_demo_customers=_getenv_bool("SEED_DEMO_CUSTOMERS", True),
    )


def load_config() -> dict:
    s = load_settings()
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "LOG_LEVEL": s.log_level,
        "CUSTOMER_API_PREFIX": s.customer_api_prefix,
        "DEFAULT_PAGE_SIZE": s.default_page_size,
        "MAX_PAGE_SIZE": s.max_page_size,
        "SEED_DEMO_CUSTOMERS": s.seed_demo_customers,
    }
