# ABOUTME: Maps decoded measurements to channel output values
# ABOUTME: Numbers with units, on/off and open/closed states, timestamps, text and fired event labels
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Union

from bthome_exporter.catalog import CatalogEntry, SemanticKind, lookup
from bthome_exporter.channels import ChannelKey
from bthome_exporter.measurement import Measurement


class OnOffState(Enum):
    ON = "ON"
    OFF = "OFF"


class OpenClosedState(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class QuantityState:
    value: float
    unit: str


@dataclass(frozen=True)
class DecimalState:
    value: float


@dataclass(frozen=True)
class DateTimeState:
    value: datetime


@dataclass(frozen=True)
class StringState:
    value: str


@dataclass(frozen=True)
class EventTrigger:
    """A fired event. Not a persisted state."""
    label: str


OutputValue = Union[
    QuantityState, DecimalState, OnOffState, OpenClosedState, DateTimeState, StringState,
    EventTrigger,
]

# Unit symbols used by the catalog -> canonical unit names
UNITS = {
    "%": "percent",
    "°C": "celsius",
    "hPa": "hectopascals",
    "lx": "lux",
    "kg": "kilograms",
    "lb": "pounds",
    "kWh": "kilowatt_hours",
    "W": "watts",
    "V": "volts",
    "A": "amperes",
    "µg/m³": "micrograms_per_cubic_meter",
    "ppm": "ppm",
    "°": "degrees",
    "°/s": "degrees_per_second",
    "mm": "millimeters",
    "m": "meters",
    "s": "seconds",
    "m/s": "meters_per_second",
    "m/s²": "meters_per_second_squared",
    "L": "liters",
    "mL": "milliliters",
    "m³": "cubic_meters",
    "m³/h": "cubic_meters_per_hour",
    "µS/cm": "microsiemens_per_centimeter",
}

UnitResolver = Callable[[str], Optional[str]]


def resolve_unit(symbol: str) -> Optional[str]:
    """Return the canonical name for a unit symbol, or None if it is not known."""
    return UNITS.get(symbol)


def project(
    measurement: Measurement,
    channel_key: Optional[ChannelKey] = None,
    unit_resolver: UnitResolver = resolve_unit,
    logger: Optional[logging.Logger] = None,
    catalog: Optional[dict[int, CatalogEntry]] = None,
) -> OutputValue:
    """
    Convert a decoded measurement into the value published on its channel.

    Args:
        measurement: Decoded sensor measurement
        channel_key: Channel being updated (used in log messages)
        unit_resolver: Maps a unit symbol to a known unit, None if unknown
        logger: Logger for unresolvable units
        catalog: Object id catalog (defaults to the built-in BTHome v2 table)

    Returns:
        A state value, or an EventTrigger for event objects such as buttons
    """
    entry = lookup(measurement.object_id, catalog)
    value = measurement.value

    if entry.kind == SemanticKind.NUMERIC:
        if value.unit is None:
            return DecimalState(value.value)
        unit = unit_resolver(value.unit)
        if unit is None:
            logger = logger or logging.getLogger('bthome_exporter.projector')
            logger.warning(
                f"Unit '{value.unit}' unknown, publishing plain number {value.value} "
                f"on channel '{channel_key}'"
            )
            return DecimalState(value.value)
        return QuantityState(value.value, unit)

    if entry.kind == SemanticKind.BINARY:
        if entry.contact:
            return OpenClosedState.OPEN if value.value else OpenClosedState.CLOSED
        return OnOffState.ON if value.value else OnOffState.OFF

    if entry.kind == SemanticKind.ENUM:
        if value.aux is None:
            return EventTrigger(value.tag)
        return EventTrigger(f"{value.tag}_{value.aux}")

    if entry.kind == SemanticKind.TIMESTAMP:
        utc = datetime.fromtimestamp(value.epoch_seconds, tz=timezone.utc)
        return DateTimeState(utc.astimezone())

    if entry.kind == SemanticKind.RAW:
        return StringState(base64.b64encode(value.data).decode('ascii'))

    if entry.kind == SemanticKind.TEXT:
        return StringState(value.text)

    return StringState(str(value))
