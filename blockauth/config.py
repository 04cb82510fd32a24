"""Runtime configuration for the service (toggleable during tests/runtime)."""
import logging
import os
from typing import Mapping, NamedTuple, Optional

logger = logging.getLogger(__name__)

# Development-only fallback. Never rely on this outside a local checkout.
DEV_JWT_SECRET = "dev-secret"


class Settings(NamedTuple):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str
    token_expiry_seconds: int
    rate_limit: int
    rate_limit_window: int
    cors_origins: tuple
    log_level: str
    debug: bool


def _flag(value: Optional[str]) -> bool:
    return (value or "").lower() in ("1", "true", "yes", "on")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    origins = env.get("CORS_ORIGINS", "*")
    return Settings(
        database_url=env.get("DATABASE_URL", "sqlite:///./blockauth.db"),
        jwt_secret=env.get("JWT_SECRET", DEV_JWT_SECRET),
        jwt_algorithm=env.get("JWT_ALGORITHM", "HS256"),
        token_expiry_seconds=int(env.get("TOKEN_EXPIRY_SECONDS", 60 * 60 * 24)),
        rate_limit=int(env.get("RATE_LIMIT", 0)),
        rate_limit_window=int(env.get("RATE_LIMIT_WINDOW", 60)),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        debug=_flag(env.get("DEBUG")),
    )


state = load_settings()


def get_settings() -> Settings:
    return state


def override(**changes) -> Settings:
    """Replace individual settings at runtime and return the new state."""
    global state
    state = state._replace(**changes)
    return state


def uses_dev_secret() -> bool:
    return state.jwt_secret == DEV_JWT_SECRET


def warn_if_insecure():
    if uses_dev_secret():
        logger.warning("JWT_SECRET is not set; using the development-only fallback secret")
