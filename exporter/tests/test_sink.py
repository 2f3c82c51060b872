"""
Unit tests for the metric sink.

Tests verify:
- All thirteen gauges are declared with the domoticz_ prefix.
- set() overwrites, reset() clears every label combination.
- replace() swaps a whole snapshot and leaves state untouched on error.
- render() emits the text exposition format.
- Process and runtime metrics are registered only when enabled.
- A render during replace() sees the old or the new snapshot, never a mix.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import threading

import pytest
from exporter.src.mapper import METRICS, Observation
from exporter.src.sink import MetricSink
from prometheus_client import CollectorRegistry

_LABELS = ("Kitchen", "12", "Light/Switch", "Switch", "Z-Wave", "OpenZWave USB")
_OTHER = ("Hall", "14", "Light/Switch", "Switch", "Z-Wave", "OpenZWave USB")


@pytest.fixture()
def sink() -> MetricSink:
    return MetricSink()


class TestDeclaration:
    """Gauges are declared once with a fixed label schema."""

    def test_help_and_type_for_every_metric(self, sink: MetricSink) -> None:
        text = sink.render()

        for name, spec in METRICS.items():
            assert f"# HELP domoticz_{name} {spec.help}" in text
            assert f"# TYPE domoticz_{name} gauge" in text

    def test_empty_sink_has_no_samples(self, sink: MetricSink) -> None:
        lines = [ln for ln in sink.render().splitlines() if not ln.startswith("#")]
        assert lines == []

    def test_uses_given_registry(self) -> None:
        registry = CollectorRegistry()
        sink = MetricSink(registry=registry)
        assert sink.registry is registry

    def test_content_type(self, sink: MetricSink) -> None:
        assert sink.content_type.startswith("text/plain")


class TestDefaultMetrics:
    """Process and runtime metrics are optional."""

    def test_disabled_by_default(self, sink: MetricSink) -> None:
        text = sink.render()

        assert "process_" not in text
        assert "python_info" not in text
        assert "python_gc_" not in text

    def test_enabled(self) -> None:
        """Process metrics are prefixed, runtime metrics are registered."""
        text = MetricSink(default_metrics=True).render()

        assert "domoticz_process_" in text
        assert "python_info" in text
        assert "python_gc_objects_collected_total" in text
        for line in text.splitlines():
            if "process_" in line:
                assert "domoticz_process_" in line


class TestSetAndReset:
    """set() overwrites one sample, reset() drops all samples."""

    def test_set_and_render(self, sink: MetricSink) -> None:
        sink.set("light_level", _LABELS, 50)

        text = sink.render()

        assert (
            'domoticz_light_level{name="Kitchen",idx="12",type="Light/Switch",'
            'subtype="Switch",hardwarename="Z-Wave",hardwaretype="OpenZWave USB"}'
            " 50.0"
        ) in text
        assert sink.value("light_level", _LABELS) == 50.0

    def test_set_overwrites(self, sink: MetricSink) -> None:
        sink.set("temp_temp", _LABELS, 20.0)
        sink.set("temp_temp", _LABELS, 21.5)

        assert sink.value("temp_temp", _LABELS) == 21.5

    def test_reset_clears_all(self, sink: MetricSink) -> None:
        sink.set("light_level", _LABELS, 50)
        sink.set("utility_usage", _OTHER, 450)

        sink.reset()

        assert sink.value("light_level", _LABELS) is None
        assert sink.value("utility_usage", _OTHER) is None

    def test_unknown_metric_rejected(self, sink: MetricSink) -> None:
        with pytest.raises(KeyError):
            sink.set("light_colour", _LABELS, 1)

    def test_wrong_label_arity_rejected(self, sink: MetricSink) -> None:
        with pytest.raises(ValueError):
            sink.set("light_level", ("Kitchen",), 1)


class TestReplace:
    """replace() swaps in a whole new snapshot."""

    def test_replace_drops_missing_devices(self, sink: MetricSink) -> None:
        sink.replace([Observation("light_level", _LABELS, 50)])
        count = sink.replace([Observation("light_level", _OTHER, 10)])

        assert count == 1
        assert sink.value("light_level", _LABELS) is None
        assert sink.value("light_level", _OTHER) == 10.0

    def test_duplicate_label_sets_collapse(self, sink: MetricSink) -> None:
        count = sink.replace(
            [
                Observation("light_level", _LABELS, 1),
                Observation("light_level", _LABELS, 2),
            ]
        )

        assert count == 1
        assert sink.value("light_level", _LABELS) == 2.0

    def test_invalid_observation_keeps_previous_state(self, sink: MetricSink) -> None:
        sink.replace([Observation("light_level", _LABELS, 50)])

        with pytest.raises(KeyError):
            sink.replace(
                [
                    Observation("light_level", _OTHER, 10),
                    Observation("bogus", _OTHER, 1),
                ]
            )

        assert sink.value("light_level", _LABELS) == 50.0
        assert sink.value("light_level", _OTHER) is None

    def test_same_input_renders_identically(self, sink: MetricSink) -> None:
        observations = [
            Observation("light_level", _LABELS, 50),
            Observation("light_status", _LABELS, 1),
            Observation("temp_temp", _OTHER, 21.4),
        ]

        sink.replace(observations)
        first = sink.render()
        sink.replace(observations)

        assert sink.render() == first


class TestRenderDuringReplace:
    """Readers never see a half-built snapshot."""

    def test_render_sees_whole_snapshots(self, sink: MetricSink) -> None:
        old = [Observation("light_level", _LABELS, 1)]
        new = [
            Observation("light_level", _LABELS, 2),
            Observation("light_status", _LABELS, 1),
        ]
        sink.replace(old)

        def _sample_lines() -> list[str]:
            return [ln for ln in sink.render().splitlines() if not ln.startswith("#")]

        before = _sample_lines()
        sink.replace(new)
        after = _sample_lines()
        sink.replace(old)

        stop = threading.Event()
        seen: list[list[str]] = []

        def _writer() -> None:
            while not stop.is_set():
                sink.replace(new)
                sink.replace(old)

        writer = threading.Thread(target=_writer, daemon=True)
        writer.start()
        try:
            for _ in range(200):
                seen.append(_sample_lines())
        finally:
            stop.set()
            writer.join(timeout=5)

        assert all(lines in (before, after) for lines in seen)
