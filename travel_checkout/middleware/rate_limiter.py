"""Rate limiting middleware using Flask-Limiter."""
import logging

from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


logger = logging.getLogger(__name__)

DEFAULT_LIMITS = ["1000 per hour", "100 per minute"]

# Remote-calling endpoints, applied per checkout session.
SESSION_ACTION_LIMIT = "10 per minute"


def get_session_key() -> str:
    """Rate limit key: the checkout session in the URL, else the client address."""
    session_id = (request.view_args or {}).get("session_id")
    if session_id:
        return f"rate_limit:checkout:{session_id}"
    return get_remote_address()


limiter = Limiter(key_func=get_remote_address, default_limits=DEFAULT_LIMITS)


def init_rate_limiter(app) -> Limiter:
    """
    Bind the shared limiter to the application.

    Uses Redis storage when configured; memory storage otherwise.
    """
    app.config.setdefault("RATELIMIT_ENABLED", True)
    storage_url = app.config.get("RATELIMIT_STORAGE_URL") or "memory://"
    if not storage_url.startswith(("redis://", "rediss://", "memory://")):
        logger.warning(f"Unsupported rate limit storage {storage_url!r}, using memory storage")
        storage_url = "memory://"
    app.config["RATELIMIT_STORAGE_URI"] = storage_url
    app.config.setdefault("RATELIMIT_STRATEGY", "fixed-window")
    app.config.setdefault("RATELIMIT_HEADERS_ENABLED", True)
    app.config.setdefault("RATELIMIT_IN_MEMORY_FALLBACK_ENABLED", True)
    limiter.init_app(app)
    if app.config["RATELIMIT_ENABLED"]:
        logger.info(f"Rate limiting enabled ({storage_url.split('://', 1)[0]} storage)")
    return limiter
