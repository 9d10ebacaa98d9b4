# ABOUTME: Packet deduplication using the BTHome packet id object
# ABOUTME: Detects retransmissions of the same packet so they are processed at most once
from dataclasses import dataclass
from typing import Optional

from bthome_exporter.catalog import PACKET_ID
from bthome_exporter.measurement import Measurement


@dataclass
class DedupState:
    """Last packet id seen for one device. Wrapped or out-of-order ids count as new."""
    last_packet_id: Optional[int] = None


def packet_id_of(measurements: list[Measurement]) -> Optional[int]:
    """Return the value of the first packet id object, or None if the packet has none."""
    for measurement in measurements:
        if measurement.object_id == PACKET_ID:
            return measurement.raw_value
    return None


def is_duplicate(measurements: list[Measurement], state: DedupState) -> bool:
    """
    Check whether a decoded packet repeats the previously processed one.

    Packets without a packet id are never duplicates; not every sensor sends one.
    Does not modify state.
    """
    packet_id = packet_id_of(measurements)
    return packet_id is not None and packet_id == state.last_packet_id


def record_packet(measurements: list[Measurement], state: DedupState) -> None:
    """Remember the packet id of a fully processed packet, if it carries one."""
    packet_id = packet_id_of(measurements)
    if packet_id is not None:
        state.last_packet_id = packet_id
