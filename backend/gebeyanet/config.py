# backend/gebeyanet/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/gebeyanet.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///gebeyanet.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on how long a writer waits for a stock lock before giving up
    LOCK_TIMEOUT_SECONDS = _int_env("LOCK_TIMEOUT_SECONDS", 5)
    RETRY_ATTEMPTS = _int_env("RETRY_ATTEMPTS", 3)

    # SQLALCHEMY_ENGINE_OPTIONS is derived in create_app() from the final URI
    # and LOCK_TIMEOUT_SECONDS; see engine_options().

    EXPIRY_ALERT_LIMIT = _int_env("EXPIRY_ALERT_LIMIT", 50)

    DEFAULT_MIN_THRESHOLD = 5
    DEFAULT_MAX_THRESHOLD = 1000

    SESSION_TTL_HOURS = _int_env("SESSION_TTL_HOURS", 24)
    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    }


def engine_options(database_uri: str, lock_timeout_seconds: int) -> dict:
    """
    Engine options that bound how long a writer waits on a lock.

    - SQLite: the driver's busy timeout (seconds).
    - PostgreSQL: lock_timeout for the session (milliseconds).
    - MySQL/MariaDB: innodb_lock_wait_timeout for the session (seconds).
    Any of these failing raises OperationalError, which the retry loop in
    services/concurrency.py reports as ConcurrencyError.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": lock_timeout_seconds}}
    if database_uri.startswith("postgresql"):
        return {
            "pool_pre_ping": True,
            "connect_args": {"options": f"-c lock_timeout={lock_timeout_seconds * 1000}"},
        }
    if database_uri.startswith(("mysql", "mariadb")):
        return {
            "pool_pre_ping": True,
            "connect_args": {"init_command": f"SET SESSION innodb_lock_wait_timeout={lock_timeout_seconds}"},
        }
    return {"pool_pre_ping": True}
