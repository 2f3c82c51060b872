"""
Device mapper for Domoticz device records.

Pure functions that turn one raw device record (a dict from the hub's
``result`` array) into zero or more metric observations. No side
effects, no I/O. Each metric field is extracted independently: a missing
or unusable field simply produces no observation for that metric.

Extraction kinds:
- ``numeric``: int/float or a plain numeric string, must be finite.
- ``status``: ``"On"``/``"Open"`` (any case) -> 1, any other string -> 0.
- ``text``: free text such as ``"123.4 kWh"``; everything except digits,
  ``.`` and ``-`` is dropped and the leading float literal is parsed.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import math
import re
from collections.abc import Iterable, Mapping
from enum import StrEnum
from typing import Any, NamedTuple


class DeviceClass(StrEnum):
    """Device classes queried from the hub (the ``filter`` parameter)."""

    LIGHT = "light"
    TEMP = "temp"
    WEATHER = "weather"
    UTILITY = "utility"


# Label schema shared by every metric, in exposition order.
LABEL_NAMES: tuple[str, ...] = (
    "name",
    "idx",
    "type",
    "subtype",
    "hardwarename",
    "hardwaretype",
)

# Record field backing each label, same order as LABEL_NAMES.
_IDENTITY_FIELDS: tuple[str, ...] = (
    "Name",
    "idx",
    "Type",
    "SubType",
    "HardwareName",
    "HardwareType",
)

# Label value used when an identity field is missing.
MISSING_LABEL: str = ""

_ON_STATES: frozenset[str] = frozenset({"ON", "OPEN"})

_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_LEADING_FLOAT_RE = re.compile(r"-?(?:[0-9]+\.?[0-9]*|\.[0-9]+)")
_PLAIN_NUMBER_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)


class MetricSpec(NamedTuple):
    """Static definition of one exported gauge."""

    device_class: DeviceClass
    field: str
    kind: str
    help: str


class Observation(NamedTuple):
    """One gauge sample: metric name, label values, numeric value."""

    metric: str
    labels: tuple[str, ...]
    value: float


METRICS: dict[str, MetricSpec] = {
    "light_level": MetricSpec(
        DeviceClass.LIGHT, "Level", "numeric",
        "Lighting device level 0-100 or 0-255",
    ),
    "light_status": MetricSpec(
        DeviceClass.LIGHT, "Status", "status",
        "Lighting device status 0=off 1=on",
    ),
    "light_battery_level": MetricSpec(
        DeviceClass.LIGHT, "BatteryLevel", "numeric",
        "Lighting device battery level 0-100 or 0-255",
    ),
    "temp_temp": MetricSpec(
        DeviceClass.TEMP, "Temp", "numeric",
        "Temperature device temperature",
    ),
    "temp_humidity": MetricSpec(
        DeviceClass.TEMP, "Humidity", "numeric",
        "Temperature device humidity percentage 0-100",
    ),
    "temp_battery_level": MetricSpec(
        DeviceClass.TEMP, "BatteryLevel", "numeric",
        "Temperature device battery level 0-100 or 0-255",
    ),
    "weather_temp": MetricSpec(
        DeviceClass.WEATHER, "Temp", "numeric",
        "Weather device temperature",
    ),
    "weather_humidity": MetricSpec(
        DeviceClass.WEATHER, "Humidity", "numeric",
        "Weather device humidity percentage 0-100",
    ),
    "weather_barometer": MetricSpec(
        DeviceClass.WEATHER, "Barometer", "numeric",
        "Weather device barometer",
    ),
    "weather_battery_level": MetricSpec(
        DeviceClass.WEATHER, "BatteryLevel", "numeric",
        "Weather device battery level 0-100 or 0-255",
    ),
    "utility_data": MetricSpec(
        DeviceClass.UTILITY, "Data", "text",
        "Utility device data",
    ),
    "utility_usage": MetricSpec(
        DeviceClass.UTILITY, "Usage", "text",
        "Utility device usage",
    ),
    "utility_battery_level": MetricSpec(
        DeviceClass.UTILITY, "BatteryLevel", "numeric",
        "Utility device battery level 0-100 or 0-255",
    ),
}


def metrics_for(device_class: DeviceClass) -> list[tuple[str, MetricSpec]]:
    """Return the ``(name, spec)`` pairs defined for *device_class*."""
    return [
        (name, spec)
        for name, spec in METRICS.items()
        if spec.device_class == device_class
    ]


def device_labels(record: Mapping[str, Any]) -> tuple[str, ...]:
    """Build the label tuple identifying the device in *record*.

    Missing or ``None`` identity fields become ``MISSING_LABEL`` so the
    tuple always has one value per entry in ``LABEL_NAMES``.
    """
    return tuple(
        MISSING_LABEL if record.get(field) is None else str(record[field])
        for field in _IDENTITY_FIELDS
    )


def parse_numeric(value: Any) -> float | None:
    """Return *value* as a finite float, or ``None`` if it is not one.

    Accepts ints, floats and strings holding a plain ASCII number
    (optional sign, decimals and exponent). Booleans are rejected even
    though they subclass ``int``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if _PLAIN_NUMBER_RE.fullmatch(text) is None:
            return None
        number = float(text)
    else:
        return None
    return number if math.isfinite(number) else None


def parse_status(value: Any) -> float | None:
    """Map a switch status string to 1 (on/open) or 0 (anything else)."""
    if not isinstance(value, str):
        return None
    return 1.0 if value.upper() in _ON_STATES else 0.0


def parse_text_number(value: Any) -> float | None:
    """Extract a number from free text such as ``"123.4 kWh"``.

    All characters other than digits, ``.`` and ``-`` are removed and
    the leading float literal of what remains is parsed, so
    ``"-5 W"`` gives ``-5.0`` and ``"n/a"`` gives ``None``. Values that
    are already numbers are taken as they are.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return parse_numeric(value)
    stripped = _NON_NUMERIC_RE.sub("", str(value))
    match = _LEADING_FLOAT_RE.match(stripped)
    if match is None:
        return None
    number = float(match.group())
    return number if math.isfinite(number) else None


_EXTRACTORS = {
    "numeric": parse_numeric,
    "status": parse_status,
    "text": parse_text_number,
}


def map_device(
    device_class: DeviceClass,
    record: Mapping[str, Any],
) -> list[Observation]:
    """Convert one device record into its metric observations.

    Args:
        device_class: Class the record was fetched under.
        record: Raw device dict from the hub.

    Returns:
        One observation per metric of *device_class* whose source field
        is present and valid. Every observation shares the same labels.
    """
    labels = device_labels(record)
    observations: list[Observation] = []
    for name, spec in metrics_for(device_class):
        if spec.field not in record:
            continue
        value = _EXTRACTORS[spec.kind](record[spec.field])
        if value is not None:
            observations.append(Observation(name, labels, value))
    return observations


def map_devices(
    device_class: DeviceClass,
    records: Iterable[Any],
) -> list[Observation]:
    """Map every record of one class, skipping entries that are not dicts."""
    observations: list[Observation] = []
    for record in records:
        if isinstance(record, Mapping):
            observations.extend(map_device(device_class, record))
    return observations
