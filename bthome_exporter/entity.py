# ABOUTME: Device entity holding channels, channel values, properties and availability
# ABOUTME: Implements the channel, value, metadata and status interfaces the packet handler writes to
from enum import Enum
from typing import Any, Optional, Protocol

from bthome_exporter.channels import ChannelKey, ChannelSpec
from bthome_exporter.projector import (
    DateTimeState,
    DecimalState,
    OnOffState,
    OpenClosedState,
    OutputValue,
    QuantityState,
    StringState,
)


class DeviceStatus(Enum):
    UNKNOWN = "UNKNOWN"
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class ChannelLifecycle(Protocol):
    """Owns the set of channels of a device."""

    def channel_keys(self) -> set[ChannelKey]:
        ...

    def create_channels(self, specs: list[ChannelSpec]) -> None:
        """Add channels; specs for keys that already exist are ignored."""
        ...


class ValueSink(Protocol):
    """Receives channel values and fired events."""

    def update_state(self, key: ChannelKey, value: OutputValue) -> None:
        ...

    def trigger(self, key: ChannelKey, label: str) -> None:
        ...

    def invalidate(self) -> None:
        """Mark every channel value as undefined."""
        ...


class MetadataSink(Protocol):
    """Receives device identity properties such as the firmware version."""

    def update_properties(self, properties: dict[str, str]) -> None:
        ...


class StatusSink(Protocol):
    """Receives availability changes."""

    def update_status(self, status: DeviceStatus, message: str = "") -> None:
        ...


class DeviceEntity:
    """
    In-memory state of one BTHome device.

    A state of None means the channel exists but its value is undefined,
    either because nothing was received yet or because the device went offline.
    """

    def __init__(self, name: str, address: str = ""):
        self.name = name
        self.address = address
        self.channels: dict[ChannelKey, ChannelSpec] = {}
        self.states: dict[ChannelKey, Optional[OutputValue]] = {}
        self.properties: dict[str, str] = {}
        self.status = DeviceStatus.UNKNOWN
        self.status_message = "Waiting for device to wake up."
        self.pending_events: list[tuple[ChannelKey, str]] = []
        self.last_update: Optional[float] = None

    def channel_keys(self) -> set[ChannelKey]:
        return set(self.channels)

    def create_channels(self, specs: list[ChannelSpec]) -> None:
        added = {spec.key: spec for spec in specs if spec.key not in self.channels}
        self.channels.update(added)
        for key, spec in added.items():
            if not spec.is_event:
                self.states[key] = None

    def update_state(self, key: ChannelKey, value: OutputValue) -> None:
        self.states[key] = value

    def trigger(self, key: ChannelKey, label: str) -> None:
        self.pending_events.append((key, label))

    def invalidate(self) -> None:
        for key in self.states:
            self.states[key] = None

    def update_properties(self, properties: dict[str, str]) -> None:
        self.properties.update(properties)

    def update_status(self, status: DeviceStatus, message: str = "") -> None:
        self.status = status
        self.status_message = message

    def drain_events(self) -> list[tuple[ChannelKey, str]]:
        """Return and forget the events fired since the last call."""
        events, self.pending_events = self.pending_events, []
        return events

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready snapshot for the /devices endpoint."""
        return {
            "name": self.name,
            "address": self.address,
            "status": self.status.value,
            "status_message": self.status_message,
            "last_update": self.last_update,
            "properties": dict(self.properties),
            "channels": [
                {
                    "id": key.id,
                    "label": spec.label,
                    "type": spec.value_type.value,
                    "unit": spec.unit,
                    "value": state_to_json(self.states.get(key)),
                }
                for key, spec in self.channels.items()
            ],
        }


def state_to_json(state: Optional[OutputValue]) -> Any:
    """Render a channel value as a JSON scalar (None when undefined)."""
    if state is None:
        return None
    if isinstance(state, (OnOffState, OpenClosedState)):
        return state.value
    if isinstance(state, DateTimeState):
        return state.value.isoformat()
    if isinstance(state, (QuantityState, DecimalState, StringState)):
        return state.value
    return str(state)
