"""HTTP audit logging middleware."""
from __future__ import annotations

import logging
from pathlib import Path
from time import time
from typing import Optional

from fastapi import FastAPI, Request

from .config import get_settings


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger used by the identity modules."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _build_logger(service_name: str, log_dir: Path) -> logging.Logger:
    logger = logging.getLogger(f"audit.{service_name}")
    if logger.handlers:
        return logger

    log_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(logging.INFO)
    handler = logging.FileHandler(log_dir / f"{service_name}.log")
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


def add_audit_middleware(app: FastAPI, service_name: str, log_dir: Optional[str] = None) -> None:
    logger = _build_logger(service_name, Path(log_dir or get_settings().log_dir))

    @app.middleware("http")
    async def audit_logger(request: Request, call_next):  # type: ignore[override]
        start = time()
        response = await call_next(request)
        duration_ms = (time() - start) * 1000
        client_ip: Optional[str] = None
        if request.client:
            client_ip = request.client.host
        # Set by get_current_user once a bearer token resolves to an available user.
        subject: Optional[str] = getattr(request.state, "subject", None)
        logger.info(
            "%s %s | status=%s | client=%s | subject=%s | duration=%.2fms",
            request.method,
            request.url.path,
            response.status_code,
            client_ip or "unknown",
            subject or "anonymous",
            duration_ms,
        )
        return response
