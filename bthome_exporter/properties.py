# ABOUTME: Splits decoded measurements into device properties and sensor measurements
# ABOUTME: Device properties (firmware version, device type) become a flat string map, never channels
from typing import Optional

from bthome_exporter.catalog import CatalogEntry, lookup, is_device_property
from bthome_exporter.measurement import Measurement, VersionValue


def split_measurements(
    measurements: list[Measurement],
    catalog: Optional[dict[int, CatalogEntry]] = None,
) -> tuple[dict[str, str], list[Measurement]]:
    """
    Partition measurements into device properties and live sensor values.

    Args:
        measurements: Decoded measurements of one packet
        catalog: Object id catalog (defaults to the built-in BTHome v2 table)

    Returns:
        Tuple of (properties, sensor_measurements). Properties map names such
        as 'firmwareVersion' and 'deviceType' to display strings; sensor
        measurements keep their packet order.
    """
    properties: dict[str, str] = {}
    sensor_measurements: list[Measurement] = []

    for measurement in measurements:
        if is_device_property(measurement.object_id):
            entry = lookup(measurement.object_id, catalog)
            properties[entry.property_name or entry.name] = render_property(measurement)
        else:
            sensor_measurements.append(measurement)

    return properties, sensor_measurements


def render_property(measurement: Measurement) -> str:
    if isinstance(measurement.value, VersionValue):
        return str(measurement.value)
    return str(measurement.raw_value)
