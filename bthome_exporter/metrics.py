# ABOUTME: Prometheus metrics registry for BTHome device channels
# ABOUTME: Publishes channel values, fired events, availability and decode errors per device
import math
from typing import Optional

from prometheus_client import Counter, Gauge

from bthome_exporter.entity import DeviceEntity, DeviceStatus
from bthome_exporter.projector import (
    DateTimeState,
    DecimalState,
    OnOffState,
    OpenClosedState,
    OutputValue,
    QuantityState,
)


sensor_value_gauge = Gauge(
    'bthome_sensor_value',
    'Latest channel value (NaN when undefined)',
    ['device', 'channel', 'unit']
)

event_counter = Counter(
    'bthome_sensor_events',
    'Events fired by a device (button presses, dimmer rotations)',
    ['device', 'channel', 'event']
)

online_gauge = Gauge(
    'bthome_device_online',
    '1 if the device is online, 0 otherwise',
    ['device']
)

decode_error_counter = Counter(
    'bthome_decode_errors',
    'Payloads that could not be decoded',
    ['device']
)

last_update_gauge = Gauge(
    'bthome_sensor_last_update_timestamp_seconds',
    'Unix timestamp of last successfully processed packet',
    ['device']
)

seen_gauge = Gauge(
    'bthome_sensor_seen',
    '1 if the device was seen in the latest scan, 0 otherwise',
    ['device']
)


def state_to_number(state: Optional[OutputValue]) -> Optional[float]:
    """
    Convert a channel value to a gauge value.

    Switches and contacts become 1/0, timestamps epoch seconds, undefined
    values NaN. Returns None for values with no numeric form (text).
    """
    if state is None:
        return math.nan
    if isinstance(state, (QuantityState, DecimalState)):
        return float(state.value)
    if isinstance(state, OnOffState):
        return 1.0 if state == OnOffState.ON else 0.0
    if isinstance(state, OpenClosedState):
        return 1.0 if state == OpenClosedState.OPEN else 0.0
    if isinstance(state, DateTimeState):
        return state.value.timestamp()
    return None


def update_metrics(device_name: str, entity: DeviceEntity, seen: bool = True) -> None:
    """
    Update Prometheus metrics for a specific device.

    Publishes every state channel, counts events fired since the previous call
    (draining them from the entity) and refreshes availability.

    Args:
        device_name: Friendly name of the device (used as 'device' label)
        entity: Device entity updated by the packet handler
        seen: Whether the device sent anything during the latest scan
    """
    for key, spec in entity.channels.items():
        if spec.is_event:
            continue
        value = state_to_number(entity.states.get(key))
        if value is not None:
            sensor_value_gauge.labels(
                device=device_name, channel=key.id, unit=spec.unit or ""
            ).set(value)

    for key, label in entity.drain_events():
        event_counter.labels(device=device_name, channel=key.id, event=label).inc()

    online_gauge.labels(device=device_name).set(1 if entity.status == DeviceStatus.ONLINE else 0)

    if entity.last_update is not None:
        last_update_gauge.labels(device=device_name).set(entity.last_update)
    seen_gauge.labels(device=device_name).set(1 if seen else 0)


def record_decode_error(device_name: str) -> None:
    decode_error_counter.labels(device=device_name).inc()
