"""Run the relay server: ``python -m app``."""
from __future__ import annotations

import socket

import uvicorn

from app.config import load_settings
from app.logging_conf import get_logger, setup_logging


def local_ipv4() -> str:
    """Best-effort LAN address phones on the same network should use.

    Connecting a UDP socket sends nothing; it only makes the kernel pick the
    outbound interface. Falls back to "localhost" when there is no route.
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
    except OSError:
        return "localhost"
    if ip == "0.0.0.0" or ip.startswith("127."):
        return "localhost"
    return ip


def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level)
    logger = get_logger("app.server")
    logger.info(
        "server.listen",
        extra={
            "event": "server_listen",
            "host": settings.host,
            "port": settings.port,
            "local_url": f"http://localhost:{settings.port}",
            "lan_url": f"http://{local_ipv4()}:{settings.port}",
        },
    )
    uvicorn.run("app.main:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
