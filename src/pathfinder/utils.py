from __future__ import annotations

from datetime import datetime, timezone
import time
from typing import Sequence
from urllib.parse import urlparse


def run_id() -> str:
    return f"run-{int(time.time() * 1000)}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def timestamp_for_filename(moment: datetime | None = None) -> str:
    """Return ``YYYY-MM-DD_HH-MM-SS``; lexical order equals chronological order."""
    return (moment or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")


def round_half_up(value: float) -> int:
    # round() rounds halves to even; report averages round halves up.
    if value >= 0:
        return int(value + 0.5)
    return -int(-value + 0.5)


def median(numbers: Sequence[float]) -> float:
    if not numbers:
        return 0
    ordered = sorted(numbers)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def format_duration(ms: int | float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60_000:
        return f"{ms / 1000:.1f}s"
    if ms < 3_600_000:
        return f"{ms / 60_000:.1f}m"
    return f"{ms / 3_600_000:.1f}h"


def extract_host_base(url: str) -> str:
    hostname = urlparse(url).hostname or ""
    if hostname.startswith("www."):
        hostname = hostname[4:]
    if not hostname:
        return "unknown"
    return hostname.split(".")[0]


def elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
