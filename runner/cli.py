from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the two-device smoke runner."""
    parser = argparse.ArgumentParser(description="Surechigai token relay smoke runner")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:3000"))
    parser.add_argument("--room", default=os.getenv("ROOM", "smoke"))
    parser.add_argument("--timeout", type=float, default=30.0)
    parser.add_argument("--poll", type=float, default=3.0, dest="poll_interval")
    return parser.parse_args(argv)
