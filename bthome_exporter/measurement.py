# ABOUTME: Data model produced by the BTHome decoder
# ABOUTME: Device info byte, decoded measurements and the closed set of decoded value types
from dataclasses import dataclass
from typing import Optional, Union


SUPPORTED_VERSION = 2


@dataclass(frozen=True)
class DeviceInfo:
    """The first byte of every BTHome payload."""
    raw: int

    @property
    def encrypted(self) -> bool:
        return bool(self.raw & 0x01)

    @property
    def trigger_based(self) -> bool:
        """Device sends on events rather than at a regular interval."""
        return bool(self.raw & 0x04)

    @property
    def version(self) -> int:
        return (self.raw >> 5) & 0x07


@dataclass(frozen=True)
class NumericValue:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class EventValue:
    tag: str
    aux: Optional[int] = None


@dataclass(frozen=True)
class TextValue:
    text: str


@dataclass(frozen=True)
class RawValue:
    data: bytes


@dataclass(frozen=True)
class TimestampValue:
    epoch_seconds: int


@dataclass(frozen=True)
class VersionValue:
    """Firmware version, most significant component first."""
    components: tuple[int, ...]

    def __str__(self) -> str:
        return ".".join(str(c) for c in self.components)


DecodedValue = Union[
    NumericValue, BooleanValue, EventValue, TextValue, RawValue, TimestampValue, VersionValue
]


@dataclass(frozen=True)
class Measurement:
    """One decoded object from a payload, in the order it appeared."""
    object_id: int
    raw_value: Union[int, bytes]
    value: DecodedValue
    ordinal: int


@dataclass(frozen=True)
class ServiceData:
    """Result of decoding one BTHome service data payload."""
    device_info: Optional[DeviceInfo]
    measurements: list[Measurement]
