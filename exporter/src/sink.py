"""
Metric sink -- holds the latest device observations and renders them
in the Prometheus text exposition format.

The sink is a custom ``prometheus_client`` collector registered on its
own ``CollectorRegistry``. Its state is a snapshot mapping each metric
name to ``{label tuple: value}``. A poll cycle builds a complete new
snapshot and swaps it in with :meth:`MetricSink.replace`, so a scrape
sees either the previous cycle's data or the new cycle's data, never a
half-populated mix.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging
import threading
from collections.abc import Iterable, Iterator

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.gc_collector import GCCollector
from prometheus_client.platform_collector import PlatformCollector
from prometheus_client.process_collector import ProcessCollector

from exporter.src.mapper import LABEL_NAMES, METRICS, Observation

logger = logging.getLogger(__name__)

NAMESPACE = "domoticz"

Snapshot = dict[str, dict[tuple[str, ...], float]]


def _empty_snapshot() -> Snapshot:
    return {name: {} for name in METRICS}


class MetricSink:
    """Registry of the device gauges and their current values.

    Args:
        default_metrics: Also register process metrics under the
            ``domoticz_`` prefix, plus the interpreter's ``python_info``
            and ``python_gc_*`` runtime metrics.
        registry: Registry to register on. A fresh one is created when
            omitted.
    """

    content_type = CONTENT_TYPE_LATEST

    def __init__(
        self,
        default_metrics: bool = False,
        registry: CollectorRegistry | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._snapshot: Snapshot = _empty_snapshot()
        self.registry = registry if registry is not None else CollectorRegistry()

        logger.info("Registering %d device gauges", len(METRICS))
        self.registry.register(self)
        if default_metrics:
            ProcessCollector(namespace=NAMESPACE, registry=self.registry)
            PlatformCollector(registry=self.registry)
            GCCollector(registry=self.registry)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Drop every label combination of every gauge."""
        with self._lock:
            self._snapshot = _empty_snapshot()

    def set(self, metric: str, labels: tuple[str, ...], value: float) -> None:
        """Set one gauge sample, overwriting any previous value.

        Raises:
            KeyError: If *metric* is not a declared gauge.
            ValueError: If *labels* does not match the label schema.
        """
        self._check(metric, labels)
        with self._lock:
            self._snapshot[metric][labels] = float(value)

    def replace(self, observations: Iterable[Observation]) -> int:
        """Atomically replace all state with *observations*.

        The new snapshot is built and validated before the lock is taken;
        if any observation is invalid the current state is left untouched.

        Returns:
            Number of distinct samples in the new snapshot.
        """
        snapshot = _empty_snapshot()
        for obs in observations:
            self._check(obs.metric, obs.labels)
            snapshot[obs.metric][obs.labels] = float(obs.value)

        with self._lock:
            self._snapshot = snapshot
        return sum(len(samples) for samples in snapshot.values())

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def value(self, metric: str, labels: tuple[str, ...]) -> float | None:
        """Return the current value of one sample, or ``None``."""
        with self._lock:
            return self._snapshot[metric].get(labels)

    def render(self) -> str:
        """Render the whole registry in the text exposition format."""
        return generate_latest(self.registry).decode("utf-8")

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for name, spec in METRICS.items():
            yield GaugeMetricFamily(
                f"{NAMESPACE}_{name}", spec.help, labels=LABEL_NAMES
            )

    def collect(self) -> Iterator[GaugeMetricFamily]:
        families = []
        with self._lock:
            for name, spec in METRICS.items():
                family = GaugeMetricFamily(
                    f"{NAMESPACE}_{name}", spec.help, labels=LABEL_NAMES
                )
                for labels, value in self._snapshot[name].items():
                    family.add_metric(list(labels), value)
                families.append(family)

        yield from families

    @staticmethod
    def _check(metric: str, labels: tuple[str, ...]) -> None:
        if metric not in METRICS:
            raise KeyError(f"Unknown metric: {metric!r}")
        if len(labels) != len(LABEL_NAMES):
            raise ValueError(
                f"Expected {len(LABEL_NAMES)} label values for {metric}, "
                f"got {len(labels)}"
            )
