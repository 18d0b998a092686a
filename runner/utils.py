from __future__ import annotations

import os


def make_fake_token(user_id: str, size: int = 32) -> bytes:
    """Stand-in for a device's serialized ranging token: a tag plus random bytes."""
    return user_id.encode("utf-8") + b":" + os.urandom(size)


def summarize(
    *, room: str, steps: list[dict], started_ms: int, finished_ms: int
) -> tuple[dict, int]:
    """Compute the summary dict and exit code from the recorded steps.

    Each step is ``{"step": name, "ok": bool, ...}``; the run passes only when
    every step passed.
    """
    failed = [s for s in steps if not s.get("ok")]
    summary = {
        "component": "runner",
        "event": "summary",
        "room": room,
        "steps": len(steps),
        "passed": len(steps) - len(failed),
        "failed": failed,
        "elapsed_ms": finished_ms - started_ms,
    }
    exit_code = 0 if steps and not failed else 1
    return summary, exit_code
