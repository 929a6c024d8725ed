"""Rate limiting for the credential and registration endpoints using SlowAPI."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from .config import Settings, get_settings

TOKEN_RATE_LIMIT = "10/minute"
REGISTRATION_RATE_LIMIT = "5/minute"


def build_limiter(settings: Settings) -> Limiter:
    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.default_rate_limit],
        enabled=settings.rate_limiting_enabled,
    )


limiter = build_limiter(get_settings())


def rate_limit_handler(_: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(status_code=429, content={"detail": f"Too many attempts: {exc.detail}"})


def apply_rate_limiter(app: FastAPI) -> None:
    """Attach the limiter middleware and exception handler to an app."""

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
