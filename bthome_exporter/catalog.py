# ABOUTME: Static BTHome v2 object id catalog
# ABOUTME: Maps each object id to its width, signedness, scale, semantic kind, unit and output channel
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from bthome_exporter.exceptions import UnknownObjectId


# Width marker for text and raw objects: one length byte followed by the data
LENGTH_PREFIXED = 0

# Object ids at or above this value describe the device, not a measurement
DEVICE_PROPERTY_THRESHOLD = 0xF0

PACKET_ID = 0x00


class SemanticKind(Enum):
    """What a decoded object means, which drives channel creation and projection."""
    NUMERIC = "numeric"
    BINARY = "binary"
    ENUM = "enum"
    TIMESTAMP = "timestamp"
    TEXT = "text"
    RAW = "raw"
    DEVICE_PROPERTY = "device_property"


@dataclass(frozen=True)
class ChannelMapping:
    """Output channel a catalog entry is published on."""
    name: str
    label: str


@dataclass(frozen=True)
class CatalogEntry:
    """Immutable decode descriptor for one object id."""
    object_id: int
    name: str
    width: int
    kind: SemanticKind
    signed: bool = False
    exponent: int = 0
    multiplier: int = 1
    unit: Optional[str] = None
    contact: bool = False
    events: dict[int, str] = field(default_factory=dict)
    aux_width: int = 0
    channel: Optional[ChannelMapping] = None
    property_name: Optional[str] = None

    @property
    def length_prefixed(self) -> bool:
        return self.width == LENGTH_PREFIXED

    def scale(self, raw: int) -> float:
        """Apply the catalog scale factor to a raw integer."""
        return raw * self.multiplier / 10 ** self.exponent


BUTTON_EVENTS = {
    0x00: "NONE",
    0x01: "PRESS",
    0x02: "DOUBLE_PRESS",
    0x03: "TRIPLE_PRESS",
    0x04: "LONG_PRESS",
    0x05: "LONG_DOUBLE_PRESS",
    0x06: "LONG_TRIPLE_PRESS",
    0x80: "HOLD_PRESS",
}

DIMMER_EVENTS = {
    0x00: "NONE",
    0x01: "ROTATE_LEFT",
    0x02: "ROTATE_RIGHT",
}


def _channel(name: str) -> ChannelMapping:
    label = name.replace("-", " ").capitalize()
    return ChannelMapping(name=name, label=label)


def _numeric(object_id, name, width, exponent=0, unit=None, signed=False,
             multiplier=1, channel=None):
    return CatalogEntry(
        object_id=object_id,
        name=name,
        width=width,
        kind=SemanticKind.NUMERIC,
        signed=signed,
        exponent=exponent,
        multiplier=multiplier,
        unit=unit,
        channel=_channel(channel or name.replace("_", "-")),
    )


def _binary(object_id, name, contact=False, channel=None):
    return CatalogEntry(
        object_id=object_id,
        name=name,
        width=1,
        kind=SemanticKind.BINARY,
        contact=contact,
        channel=_channel(channel or name.replace("_", "-")),
    )


_ENTRIES = [
    _numeric(0x00, "packet_id", 1),
    _numeric(0x01, "battery", 1, unit="%"),
    _numeric(0x02, "temperature", 2, exponent=2, unit="°C", signed=True),
    _numeric(0x03, "humidity", 2, exponent=2, unit="%"),
    _numeric(0x04, "pressure", 3, exponent=2, unit="hPa"),
    _numeric(0x05, "illuminance", 3, exponent=2, unit="lx"),
    _numeric(0x06, "mass_kg", 2, exponent=2, unit="kg", channel="mass"),
    _numeric(0x07, "mass_lb", 2, exponent=2, unit="lb", channel="mass"),
    _numeric(0x08, "dewpoint", 2, exponent=2, unit="°C", signed=True),
    _numeric(0x09, "count", 1),
    _numeric(0x0A, "energy", 3, exponent=3, unit="kWh"),
    _numeric(0x0B, "power", 3, exponent=2, unit="W"),
    _numeric(0x0C, "voltage", 2, exponent=3, unit="V"),
    _numeric(0x0D, "pm2_5", 2, unit="µg/m³", channel="pm25"),
    _numeric(0x0E, "pm10", 2, unit="µg/m³"),
    _binary(0x0F, "generic_boolean"),
    _binary(0x10, "power", channel="power-on"),
    _binary(0x11, "opening", contact=True),
    _numeric(0x12, "co2", 2, unit="ppm"),
    _numeric(0x13, "tvoc", 2, unit="µg/m³"),
    _numeric(0x14, "moisture", 2, exponent=2, unit="%"),
    _binary(0x15, "battery_low"),
    _binary(0x16, "battery_charging"),
    _binary(0x17, "carbon_monoxide"),
    _binary(0x18, "cold"),
    _binary(0x19, "connectivity"),
    _binary(0x1A, "door", contact=True),
    _binary(0x1B, "garage_door", contact=True),
    _binary(0x1C, "gas", channel="gas-detected"),
    _binary(0x1D, "heat"),
    _binary(0x1E, "light"),
    _binary(0x1F, "lock"),
    _binary(0x20, "moisture", channel="moisture-detected"),
    _binary(0x21, "motion"),
    _binary(0x22, "moving"),
    _binary(0x23, "occupancy"),
    _binary(0x24, "plug"),
    _binary(0x25, "presence"),
    _binary(0x26, "problem"),
    _binary(0x27, "running"),
    _binary(0x28, "safety"),
    _binary(0x29, "smoke"),
    _binary(0x2A, "sound"),
    _binary(0x2B, "tamper"),
    _binary(0x2C, "vibration"),
    _binary(0x2D, "window", contact=True),
    _numeric(0x2E, "humidity", 1, unit="%"),
    _numeric(0x2F, "moisture", 1, unit="%"),
    CatalogEntry(0x3A, "button", 1, SemanticKind.ENUM,
                 events=BUTTON_EVENTS, channel=_channel("button")),
    CatalogEntry(0x3C, "dimmer", 1, SemanticKind.ENUM,
                 events=DIMMER_EVENTS, aux_width=1, channel=_channel("dimmer")),
    _numeric(0x3D, "count_uint16", 2, channel="count"),
    _numeric(0x3E, "count_uint32", 4, channel="count"),
    _numeric(0x3F, "rotation", 2, exponent=1, unit="°", signed=True),
    _numeric(0x40, "distance_mm", 2, unit="mm", channel="distance"),
    _numeric(0x41, "distance_m", 2, exponent=1, unit="m", channel="distance"),
    _numeric(0x42, "duration", 3, exponent=3, unit="s"),
    _numeric(0x43, "current", 2, exponent=3, unit="A"),
    _numeric(0x44, "speed", 2, exponent=2, unit="m/s"),
    _numeric(0x45, "temperature_0_1", 2, exponent=1, unit="°C", signed=True,
             channel="temperature"),
    _numeric(0x46, "uv_index", 1, exponent=1),
    _numeric(0x47, "volume_0_1", 2, exponent=1, unit="L", channel="volume"),
    _numeric(0x48, "volume_ml", 2, unit="mL", channel="volume"),
    _numeric(0x49, "volume_flow_rate", 2, exponent=3, unit="m³/h"),
    _numeric(0x4A, "voltage_0_1", 2, exponent=1, unit="V", channel="voltage"),
    _numeric(0x4B, "gas", 3, exponent=3, unit="m³"),
    _numeric(0x4C, "gas_uint32", 4, exponent=3, unit="m³", channel="gas"),
    _numeric(0x4D, "energy_uint32", 4, exponent=3, unit="kWh", channel="energy"),
    _numeric(0x4E, "volume_uint32", 4, exponent=3, unit="L", channel="volume"),
    _numeric(0x4F, "water", 4, exponent=3, unit="L"),
    CatalogEntry(0x50, "timestamp", 4, SemanticKind.TIMESTAMP,
                 channel=_channel("timestamp")),
    _numeric(0x51, "acceleration", 2, exponent=3, unit="m/s²"),
    _numeric(0x52, "gyroscope", 2, exponent=3, unit="°/s"),
    CatalogEntry(0x53, "text", LENGTH_PREFIXED, SemanticKind.TEXT,
                 channel=_channel("text")),
    CatalogEntry(0x54, "raw", LENGTH_PREFIXED, SemanticKind.RAW,
                 channel=_channel("raw")),
    _numeric(0x55, "volume_storage", 4, exponent=3, unit="L"),
    _numeric(0x56, "conductivity", 2, unit="µS/cm"),
    _numeric(0x57, "temperature_sint8", 1, unit="°C", signed=True,
             channel="temperature"),
    _numeric(0x58, "temperature_0_35", 1, exponent=2, multiplier=35, unit="°C",
             signed=True, channel="temperature"),
    _numeric(0x59, "count_sint8", 1, signed=True, channel="count"),
    _numeric(0x5A, "count_sint16", 2, signed=True, channel="count"),
    _numeric(0x5B, "count_sint32", 4, signed=True, channel="count"),
    _numeric(0x5C, "power_sint32", 4, exponent=2, unit="W", signed=True,
             channel="power"),
    _numeric(0x5D, "current_sint16", 2, exponent=3, unit="A", signed=True,
             channel="current"),
    _numeric(0x5E, "direction", 2, exponent=2, unit="°"),
    _numeric(0x5F, "precipitation", 2, exponent=1, unit="mm"),
    # Identifies which sub-device sent the packet; decoded, never published
    CatalogEntry(0x60, "channel", 1, SemanticKind.NUMERIC),
    CatalogEntry(0xF0, "device_type", 2, SemanticKind.DEVICE_PROPERTY,
                 property_name="deviceType"),
    CatalogEntry(0xF1, "firmware_version_uint32", 4, SemanticKind.DEVICE_PROPERTY,
                 property_name="firmwareVersion"),
    CatalogEntry(0xF2, "firmware_version_uint24", 3, SemanticKind.DEVICE_PROPERTY,
                 property_name="firmwareVersion"),
]

CATALOG: dict[int, CatalogEntry] = {entry.object_id: entry for entry in _ENTRIES}


def lookup(object_id: int, catalog: Optional[dict[int, CatalogEntry]] = None) -> CatalogEntry:
    """
    Find the catalog entry for an object id.

    Args:
        object_id: BTHome object id byte
        catalog: Catalog to search (defaults to the built-in BTHome v2 table)

    Returns:
        CatalogEntry describing how to decode the object

    Raises:
        UnknownObjectId: If the object id is not in the catalog
    """
    entry = (catalog if catalog is not None else CATALOG).get(object_id)
    if entry is None:
        raise UnknownObjectId(object_id)
    return entry


def is_device_property(object_id: int) -> bool:
    return object_id >= DEVICE_PROPERTY_THRESHOLD
