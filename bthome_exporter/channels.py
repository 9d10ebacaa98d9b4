# ABOUTME: Output channel identities and the reconciler that grows a device's channel set
# ABOUTME: Works out which channels a packet needs that the device does not have yet
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bthome_exporter.catalog import CATALOG, CatalogEntry, ChannelMapping, SemanticKind
from bthome_exporter.measurement import Measurement


class ValueType(Enum):
    """Kind of value a channel carries."""
    NUMBER = "number"
    SWITCH = "switch"
    CONTACT = "contact"
    DATETIME = "datetime"
    STRING = "string"
    EVENT = "event"


@dataclass(frozen=True)
class ChannelKey:
    """
    Stable identity of an output channel.

    instance is only set when the same object id occurs more than once in a
    packet; those channels are numbered from 1.
    """
    kind: str
    instance: Optional[int] = None

    @property
    def id(self) -> str:
        if self.instance is None:
            return self.kind
        return f"{self.kind}_{self.instance}"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class ChannelSpec:
    """Everything needed to materialize a new channel."""
    key: ChannelKey
    label: str
    value_type: ValueType
    is_event: bool
    unit: Optional[str] = None


def value_type_for(entry: CatalogEntry) -> ValueType:
    if entry.kind == SemanticKind.BINARY:
        return ValueType.CONTACT if entry.contact else ValueType.SWITCH
    if entry.kind == SemanticKind.ENUM:
        return ValueType.EVENT
    if entry.kind == SemanticKind.TIMESTAMP:
        return ValueType.DATETIME
    if entry.kind in (SemanticKind.TEXT, SemanticKind.RAW):
        return ValueType.STRING
    return ValueType.NUMBER


def group_by_object_id(measurements: list[Measurement]) -> dict[int, list[Measurement]]:
    """Group measurements by object id, keeping first-seen order of ids and of measurements."""
    grouped: dict[int, list[Measurement]] = {}
    for measurement in measurements:
        grouped.setdefault(measurement.object_id, []).append(measurement)
    return grouped


def channel_keys(mapping: ChannelMapping, count: int) -> list[ChannelKey]:
    """Keys for `count` occurrences of one object id in a packet."""
    if count == 1:
        return [ChannelKey(mapping.name)]
    return [ChannelKey(mapping.name, i) for i in range(1, count + 1)]


def reconcile(
    existing: set[ChannelKey],
    grouped: dict[int, list[Measurement]],
    catalog: Optional[dict[int, CatalogEntry]] = None,
    logger: Optional[logging.Logger] = None,
) -> list[ChannelSpec]:
    """
    Compute the channels a packet needs that do not exist yet.

    Pure: the caller merges the returned specs into its channel set. An
    unnumbered channel left over from earlier packets is never removed when
    numbered channels for the same kind are created; channels are append-only
    and consumers may already be bound to the unnumbered one.

    Args:
        existing: Channel keys the device already has
        grouped: Sensor measurements grouped by object id (see group_by_object_id)
        catalog: Object id catalog (defaults to the built-in BTHome v2 table)
        logger: Logger for object ids without an output channel

    Returns:
        Specs of the new channels, in packet order, each key at most once
    """
    catalog = catalog if catalog is not None else CATALOG
    logger = logger or logging.getLogger('bthome_exporter.channels')

    new_specs: list[ChannelSpec] = []
    seen: set[ChannelKey] = set(existing)

    for object_id, measurements in grouped.items():
        entry = catalog.get(object_id)
        if entry is None or entry.channel is None:
            logger.warning(f"No channel mapping for object id 0x{object_id:02X}, ignoring")
            continue

        value_type = value_type_for(entry)
        for key in channel_keys(entry.channel, len(measurements)):
            if key in seen:
                continue
            seen.add(key)
            label = entry.channel.label
            if key.instance is not None:
                label = f"{label} {key.instance}"
            new_specs.append(ChannelSpec(
                key=key,
                label=label,
                value_type=value_type,
                is_event=value_type == ValueType.EVENT,
                unit=entry.unit,
            ))

    return new_specs


def assign_channels(
    grouped: dict[int, list[Measurement]],
    catalog: Optional[dict[int, CatalogEntry]] = None,
) -> list[tuple[ChannelKey, Measurement]]:
    """
    Pair every publishable measurement with the channel it updates.

    Measurements whose object id has no channel mapping are left out.
    """
    catalog = catalog if catalog is not None else CATALOG
    assignments: list[tuple[ChannelKey, Measurement]] = []

    for object_id, measurements in grouped.items():
        entry = catalog.get(object_id)
        if entry is None or entry.channel is None:
            continue
        keys = channel_keys(entry.channel, len(measurements))
        assignments.extend(zip(keys, measurements))

    return assignments
