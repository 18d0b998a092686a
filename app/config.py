"""Environment-driven settings for the relay server."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from . import __version__

__all__ = ["Settings", "load_settings"]

SERVICE_NAME = "Surechigai Token Server"


def _parse_port(raw: str) -> int:
    try:
        port = int(raw, 10)
    except ValueError as e:
        raise ValueError("PORT must be an integer") from e
    if not (0 < port < 65536):
        raise ValueError("PORT must be in [1,65535]")
    return port


def _parse_origins(raw: str) -> list[str]:
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    name: str = SERVICE_NAME
    version: str = __version__


def load_settings() -> Settings:
    """Build Settings from HOST, PORT, LOG_LEVEL, CORS_ORIGINS and APP_VERSION.

    Raises:
        ValueError: if PORT is not a valid TCP port.
    """
    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_parse_port(os.getenv("PORT", "3000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        cors_origins=_parse_origins(os.getenv("CORS_ORIGINS", "*")),
        version=os.getenv("APP_VERSION", __version__),
    )
