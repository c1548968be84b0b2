import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _default_database_url() -> str:
    db_user = os.getenv("POSTGRES_USER", "postgres")
    db_password = os.getenv("POSTGRES_PASSWORD", "postgres")
    db_host = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
    db_port = os.getenv("POSTGRES_PORT", "5433")
    db_name = os.getenv("POSTGRES_DB", "orders")
    return f"postgresql+asyncpg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


@dataclass(frozen=True)
class Settings:
    listen_host: str = "localhost"
    listen_port: int = 8888
    order_store: str = "sql" # sql, memory
    database_url: str = ""
    sql_echo: bool = False
    charge_service_url: str = "http://localhost:8003"
    fulfillment_service_url: str = "http://localhost:8005"
    gateway_timeout_seconds: float = 10.0
    log_level: str = "INFO"
    otlp_endpoint: str = "http://localhost:4317"
    tracing_enabled: bool = False
    metrics_enabled: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Builds settings from the process environment (and a .env file if present)."""
        order_store = os.getenv("ORDER_STORE", "sql").lower()
        if order_store not in ("sql", "memory"):
            raise ValueError(f"ORDER_STORE must be 'sql' or 'memory', got {order_store!r}")

        return cls(
            listen_host=os.getenv("LISTEN_HOST", "localhost"),
            listen_port=int(os.getenv("LISTEN_PORT", "8888")),
            order_store=order_store,
            database_url=os.getenv("DATABASE_URL") or _default_database_url(),
            sql_echo=_env_bool("SQL_ECHO", False),
            charge_service_url=os.getenv("CHARGE_SERVICE_URL", "http://localhost:8003"),
            fulfillment_service_url=os.getenv("FULFILLMENT_SERVICE_URL", "http://localhost:8005"),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            otlp_endpoint=os.getenv("OTLP_ENDPOINT", "http://localhost:4317"),
            # Tracing is opt-in so local runs don't spam a missing collector
            tracing_enabled=_env_bool("TRACING_ENABLED", "OTLP_ENDPOINT" in os.environ),
            metrics_enabled=_env_bool("METRICS_ENABLED", True),
        )
