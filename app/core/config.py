from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

# Used only when CREDENTIAL_SECRET is unset outside prod.  Anyone who knows
# this value can mint credentials that pass the signature check.
DEFAULT_CREDENTIAL_SECRET = "default-secret"
DEFAULT_ISSUER = "Kube Credential Authority"

APP_VERSION = "1.0.0"


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


def _getenv_float(name: str, default: float) -> float:
    raw = _getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number (got {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    worker_id: str = "worker-0"
    credential_secret: str = field(default=DEFAULT_CREDENTIAL_SECRET, repr=False)
    credential_issuer: str = DEFAULT_ISSUER
    issuance_service_url: str = "http://localhost:3001"
    issuance_timeout_seconds: float = 10.0
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: int = 900
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    @property
    def uses_default_secret(self) -> bool:
        return self.credential_secret == DEFAULT_CREDENTIAL_SECRET


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000, minimum=1)

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    # Audit identity only; any unique-per-process value works.
    worker_id = _getenv("WORKER_ID", "") or f"worker-{os.getpid()}"

    # JWT_SECRET is the name the earlier Node services read the same secret from.
    secret = _getenv("CREDENTIAL_SECRET", "") or _getenv("JWT_SECRET", "")
    if not secret:
        if app_env_raw == "prod":
            raise ValueError("CREDENTIAL_SECRET must be set when APP_ENV=prod")
        secret = DEFAULT_CREDENTIAL_SECRET

    issuance_url = _getenv("ISSUANCE_SERVICE_URL", "http://localhost:3001").rstrip("/")
    if not issuance_url.startswith(("http://", "https://")):
        raise ValueError(
            f"ISSUANCE_SERVICE_URL must be an http(s) URL (got {issuance_url!r})"
        )

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        worker_id=worker_id,
        credential_secret=secret,
        credential_issuer=_getenv("CREDENTIAL_ISSUER", DEFAULT_ISSUER) or DEFAULT_ISSUER,
        issuance_service_url=issuance_url,
        issuance_timeout_seconds=_getenv_float("ISSUANCE_TIMEOUT_SECONDS", 10.0),
        rate_limit_max_requests=_getenv_int("RATE_LIMIT_MAX_REQUESTS", 100, minimum=1),
        rate_limit_window_seconds=_getenv_int(
            "RATE_LIMIT_WINDOW_SECONDS", 900, minimum=1
        ),
        cors_origins=cors_origins,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
