# ABOUTME: BTHome v2 service data decoder and encoder
# ABOUTME: Single forward pass over the payload, driven entirely by the object id catalog
from datetime import datetime
from typing import Any, Iterable, Optional, Union

from bthome_exporter.catalog import CatalogEntry, SemanticKind, lookup
from bthome_exporter.exceptions import (
    EncryptedPayloadUnsupported,
    TruncatedPayload,
    UnknownObjectId,
    UnsupportedVersion,
)
from bthome_exporter.measurement import (
    SUPPORTED_VERSION,
    BooleanValue,
    DecodedValue,
    DeviceInfo,
    EventValue,
    Measurement,
    NumericValue,
    RawValue,
    ServiceData,
    TextValue,
    TimestampValue,
    VersionValue,
)

# Device info byte for an unencrypted, regularly sending BTHome v2 device
DEFAULT_DEVICE_INFO = SUPPORTED_VERSION << 5


def parse_bthome(payload: bytes, catalog: Optional[dict[int, CatalogEntry]] = None) -> ServiceData:
    """
    Parse a BTHome v2 service data payload.

    The payload starts with the device info byte, followed by any number of
    objects. Each object is an object id byte and either a fixed number of
    little-endian bytes or, for text and raw objects, a length byte and that
    many bytes. Object widths come from the catalog; an unknown object id makes
    the rest of the payload unreadable, so the whole payload is rejected.
    BTHome format: https://bthome.io/format/

    Args:
        payload: Raw service data bytes (UUID 0xFCD2), possibly empty
        catalog: Object id catalog (defaults to the built-in BTHome v2 table)

    Returns:
        ServiceData with the device info and measurements in payload order.
        An empty payload yields no device info and no measurements.

    Raises:
        EncryptedPayloadUnsupported: If the encryption flag is set
        UnsupportedVersion: If the payload is not BTHome v2
        UnknownObjectId: If an object id is not in the catalog
        TruncatedPayload: If the payload ends in the middle of an object
    """
    if not payload:
        return ServiceData(device_info=None, measurements=[])

    device_info = DeviceInfo(payload[0])
    if device_info.encrypted:
        raise EncryptedPayloadUnsupported()
    if device_info.version != SUPPORTED_VERSION:
        raise UnsupportedVersion(device_info.version)

    measurements: list[Measurement] = []
    idx = 1

    while idx < len(payload):
        object_id = payload[idx]
        try:
            entry = lookup(object_id, catalog)
        except UnknownObjectId:
            raise UnknownObjectId(object_id, offset=idx) from None
        idx += 1

        if entry.length_prefixed:
            length = _take(payload, idx, 1, object_id)[0]
            idx += 1
            raw: Union[int, bytes] = bytes(_take(payload, idx, length, object_id))
            idx += length
        else:
            data = _take(payload, idx, entry.width, object_id)
            raw = int.from_bytes(data, 'little', signed=entry.signed)
            idx += entry.width

        aux = None
        if entry.aux_width:
            aux = int.from_bytes(_take(payload, idx, entry.aux_width, object_id), 'little')
            idx += entry.aux_width

        measurements.append(Measurement(
            object_id=object_id,
            raw_value=raw,
            value=_decode_value(entry, raw, aux),
            ordinal=len(measurements),
        ))

    return ServiceData(device_info=device_info, measurements=measurements)


def _take(payload: bytes, idx: int, count: int, object_id: int) -> bytes:
    if idx + count > len(payload):
        raise TruncatedPayload(object_id, needed=count, available=len(payload) - idx)
    return payload[idx:idx + count]


def _numeric_value(entry: CatalogEntry, raw: int, aux: Optional[int]) -> DecodedValue:
    return NumericValue(value=entry.scale(raw), unit=entry.unit)


def _binary_value(entry: CatalogEntry, raw: int, aux: Optional[int]) -> DecodedValue:
    return BooleanValue(value=raw != 0)


def _event_value(entry: CatalogEntry, raw: int, aux: Optional[int]) -> DecodedValue:
    return EventValue(tag=entry.events.get(raw, "UNKNOWN"), aux=aux)


def _timestamp_value(entry: CatalogEntry, raw: int, aux: Optional[int]) -> DecodedValue:
    return TimestampValue(epoch_seconds=raw)


def _text_value(entry: CatalogEntry, raw: bytes, aux: Optional[int]) -> DecodedValue:
    return TextValue(text=raw.decode('utf-8', errors='replace'))


def _raw_value(entry: CatalogEntry, raw: bytes, aux: Optional[int]) -> DecodedValue:
    return RawValue(data=raw)


def _property_value(entry: CatalogEntry, raw: int, aux: Optional[int]) -> DecodedValue:
    if entry.property_name == "firmwareVersion":
        return VersionValue(components=tuple(raw.to_bytes(entry.width, 'big')))
    return NumericValue(value=raw)


_VALUE_DECODERS = {
    SemanticKind.NUMERIC: _numeric_value,
    SemanticKind.BINARY: _binary_value,
    SemanticKind.ENUM: _event_value,
    SemanticKind.TIMESTAMP: _timestamp_value,
    SemanticKind.TEXT: _text_value,
    SemanticKind.RAW: _raw_value,
    SemanticKind.DEVICE_PROPERTY: _property_value,
}


def _decode_value(entry: CatalogEntry, raw: Union[int, bytes], aux: Optional[int]) -> DecodedValue:
    return _VALUE_DECODERS[entry.kind](entry, raw, aux)


def encode_object(object_id: int, value: Any,
                  catalog: Optional[dict[int, CatalogEntry]] = None) -> bytes:
    """
    Encode a single object (object id byte plus data) in BTHome v2 format.

    Accepted values per semantic kind:
        numeric: int or float in the kind's physical unit (scaled and rounded)
        binary: bool
        enum: event tag, or (tag, steps) for kinds with a step count
        timestamp: Unix epoch seconds or an aware datetime
        text: str (UTF-8, at most 255 bytes)
        raw: bytes (at most 255)
        device property: int, or a dotted version string for firmware versions

    Raises:
        UnknownObjectId: If the object id is not in the catalog
        ValueError: If the value cannot be represented by the object's encoding
    """
    entry = lookup(object_id, catalog)
    header = bytes([object_id])

    if entry.kind in (SemanticKind.TEXT, SemanticKind.RAW):
        data = value.encode('utf-8') if isinstance(value, str) else bytes(value)
        if len(data) > 0xFF:
            raise ValueError(f"{entry.name} payload too long: {len(data)} bytes")
        return header + bytes([len(data)]) + data

    aux = None
    if entry.kind == SemanticKind.NUMERIC:
        raw = round(value * 10 ** entry.exponent / entry.multiplier)
    elif entry.kind == SemanticKind.BINARY:
        raw = 1 if value else 0
    elif entry.kind == SemanticKind.ENUM:
        tag, aux = value if isinstance(value, tuple) else (value, None)
        codes = {name: code for code, name in entry.events.items()}
        if tag not in codes:
            raise ValueError(f"Unknown {entry.name} event: {tag}")
        raw = codes[tag]
        if entry.aux_width and aux is None:
            aux = 0
    elif entry.kind == SemanticKind.TIMESTAMP:
        raw = int(value.timestamp()) if isinstance(value, datetime) else int(value)
    elif isinstance(value, str):
        raw = int.from_bytes(bytes(int(part) for part in value.split(".")), 'big')
    else:
        raw = int(value)

    try:
        data = raw.to_bytes(entry.width, 'little', signed=entry.signed)
        if entry.aux_width:
            data += aux.to_bytes(entry.aux_width, 'little')
    except OverflowError as e:
        raise ValueError(f"Value {value!r} out of range for {entry.name}") from e

    return header + data


def encode_bthome(objects: Iterable[tuple[int, Any]], device_info: int = DEFAULT_DEVICE_INFO,
                  catalog: Optional[dict[int, CatalogEntry]] = None) -> bytes:
    """
    Build a complete BTHome service data payload.

    Args:
        objects: (object_id, value) pairs, in the order they should appear
        device_info: Device info byte (defaults to unencrypted BTHome v2)
        catalog: Object id catalog (defaults to the built-in BTHome v2 table)

    Returns:
        Payload bytes as a sensor would broadcast them
    """
    payload = bytearray([device_info])
    for object_id, value in objects:
        payload += encode_object(object_id, value, catalog)
    return bytes(payload)
