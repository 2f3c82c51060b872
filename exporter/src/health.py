"""
Exporter health tracking based on the outcome of the last poll cycle.

The scheduler reports every finished cycle through
``record_cycle_success()`` or ``record_cycle_failure()``.
``get_health_status()`` turns that into a dict served at ``/health``.
The exporter is healthy only when the last cycle completed and every
device class was fetched.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

# Module-level state describing the most recent cycle.
_last_cycle_ok: bool | None = None
_last_cycle_ts: float | None = None
_last_cycle_duration_s: float | None = None
_last_fetch_ok: dict[str, bool] = {}
_last_device_counts: dict[str, int] = {}
_last_observation_count: int | None = None


def record_cycle_success(
    fetch_ok: dict[str, bool],
    device_counts: dict[str, int],
    observation_count: int,
    duration_s: float,
) -> None:
    """Record a completed cycle.

    Args:
        fetch_ok: Device class -> whether its fetch succeeded.
        device_counts: Device class -> number of records received.
        observation_count: Samples published by the cycle.
        duration_s: Wall time of the cycle in seconds.
    """
    global _last_cycle_ok, _last_cycle_ts, _last_cycle_duration_s  # noqa: PLW0603
    global _last_fetch_ok, _last_device_counts, _last_observation_count  # noqa: PLW0603
    _last_cycle_ok = True
    _last_cycle_ts = time.monotonic()
    _last_cycle_duration_s = duration_s
    _last_fetch_ok = dict(fetch_ok)
    _last_device_counts = dict(device_counts)
    _last_observation_count = observation_count


def record_cycle_failure(duration_s: float) -> None:
    """Record a cycle that ended with an unexpected error."""
    global _last_cycle_ok, _last_cycle_ts, _last_cycle_duration_s  # noqa: PLW0603
    _last_cycle_ok = False
    _last_cycle_ts = time.monotonic()
    _last_cycle_duration_s = duration_s


def is_healthy() -> bool:
    """True when the last cycle completed with every class fetched."""
    return bool(
        _last_cycle_ok and _last_fetch_ok and all(_last_fetch_ok.values())
    )


def get_health_status() -> dict[str, Any]:
    """Build a health status dict for the exporter.

    Returns:
        Dict with ``status`` (``"ok"``, ``"degraded"`` or ``"starting"``),
        the last cycle outcome, its age in seconds, its duration, the
        per-class fetch results and device counts, and the number of
        published samples.
    """
    elapsed: float | None = None
    if _last_cycle_ts is not None:
        elapsed = round(time.monotonic() - _last_cycle_ts, 1)

    if _last_cycle_ok is None:
        status = "starting"
    elif is_healthy():
        status = "ok"
    else:
        status = "degraded"

    return {
        "status": status,
        "last_cycle_success": _last_cycle_ok,
        "last_cycle_elapsed_s": elapsed,
        "last_cycle_duration_s": _last_cycle_duration_s,
        "fetch_ok": dict(_last_fetch_ok),
        "device_counts": dict(_last_device_counts),
        "observation_count": _last_observation_count,
        "checked_at": datetime.now(tz=UTC).isoformat(),
    }


def reset() -> None:
    """Reset module-level state (for testing only)."""
    global _last_cycle_ok, _last_cycle_ts, _last_cycle_duration_s  # noqa: PLW0603
    global _last_fetch_ok, _last_device_counts, _last_observation_count  # noqa: PLW0603
    _last_cycle_ok = None
    _last_cycle_ts = None
    _last_cycle_duration_s = None
    _last_fetch_ok = {}
    _last_device_counts = {}
    _last_observation_count = None
