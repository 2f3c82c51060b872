"""
Poll scheduler -- runs fetch/map/publish cycles on a fixed interval.

A single background thread fires the first cycle immediately and then
one cycle per ``interval`` seconds. Cycles never overlap: :meth:`tick`
only starts a cycle when none is running, otherwise the tick is dropped.
Ticks missed while a slow cycle was running are dropped too, there is
never a backlog.

One cycle:
1. Fetch the four device classes concurrently (``HubClient.fetch_all``).
2. Map the records of every class that fetched successfully.
3. Swap the resulting observations into the sink in one step. Classes
   whose fetch failed contribute nothing, so their gauges disappear
   instead of going stale.

Any unexpected error is logged at the cycle boundary; the scheduler
returns to idle and retries on the next tick.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging
import threading
import time
from enum import StrEnum

from exporter.src.config import MIN_INTERVAL_S
from exporter.src.health import record_cycle_failure, record_cycle_success
from exporter.src.hub_client import HubClient
from exporter.src.mapper import Observation, map_devices
from exporter.src.sink import MetricSink

logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    POLLING = "polling"


class PollScheduler:
    """Serialised poll loop feeding a :class:`MetricSink`.

    Args:
        client: Hub client used to fetch device lists.
        sink: Sink receiving each cycle's observations.
        interval: Seconds between cycle starts, at least ``MIN_INTERVAL_S``.
    """

    def __init__(
        self,
        client: HubClient,
        sink: MetricSink,
        interval: float,
    ) -> None:
        self._client = client
        self._sink = sink
        self._interval = max(interval, MIN_INTERVAL_S)
        self._cycle_lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    # ------------------------------------------------------------------
    # Cycle control
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """Run one cycle unless another is already in flight.

        Returns:
            ``True`` if a cycle ran, ``False`` if the tick was dropped.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.debug("Previous cycle still running, tick dropped")
            return False
        try:
            self._state = SchedulerState.POLLING
            self.run_cycle()
        finally:
            self._state = SchedulerState.IDLE
            self._cycle_lock.release()
        return True

    def run_cycle(self) -> None:
        """Fetch, map and publish once. Never raises."""
        started = time.monotonic()
        try:
            results = self._client.fetch_all()

            observations: list[Observation] = []
            fetch_ok: dict[str, bool] = {}
            device_counts: dict[str, int] = {}
            for device_class, records in results.items():
                fetch_ok[device_class.value] = records is not None
                if records is None:
                    logger.warning(
                        "No data for %s devices this cycle", device_class
                    )
                    continue
                device_counts[device_class.value] = len(records)
                observations.extend(map_devices(device_class, records))
                logger.debug("%s devices = %d", device_class, len(records))

            published = self._sink.replace(observations)
        except Exception:
            logger.exception("Unexpected error in poll cycle")
            record_cycle_failure(time.monotonic() - started)
            return

        duration = time.monotonic() - started
        record_cycle_success(fetch_ok, device_counts, published, duration)
        logger.debug(
            "Cycle complete: %d samples published in %.3fs",
            published,
            duration,
        )

    # ------------------------------------------------------------------
    # Background thread
    # ------------------------------------------------------------------

    def _loop(self) -> None:
        """Tick immediately, then every ``interval`` seconds until stopped."""
        next_run = time.monotonic()
        while not self._stop_event.is_set():
            self.tick()

            next_run += self._interval
            now = time.monotonic()
            if next_run <= now:
                missed = int((now - next_run) // self._interval) + 1
                logger.warning(
                    "Poll cycle overran the %ss interval, dropped %d tick(s)",
                    self._interval,
                    missed,
                )
                next_run += missed * self._interval
            self._stop_event.wait(timeout=next_run - now)

    def start(self) -> None:
        """Start the background poll thread (first cycle fires at once)."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name="poll-thread",
        )
        self._thread.start()
        logger.info("Poll scheduler started, interval %ss", self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the poll thread to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Poll scheduler stopped")
