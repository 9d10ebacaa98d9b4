# ABOUTME: Unit tests for the property/measurement splitter
# ABOUTME: Tests that device identity objects become properties and never sensor measurements
from bthome_exporter.catalog import CATALOG, CatalogEntry, SemanticKind
from bthome_exporter.parser import parse_bthome
from bthome_exporter.properties import split_measurements


def test_split_device_type():
    """Test the device type code from a real sensor packet."""
    measurements = parse_bthome(bytes([0x40, 0x01, 0x64, 0x3F, 0x02, 0x0C, 0xF0, 0x02, 0x00])).measurements

    properties, sensors = split_measurements(measurements)

    assert properties == {"deviceType": "2"}
    assert [m.object_id for m in sensors] == [0x01, 0x3F]


def test_split_firmware_versions():
    """Test 32-bit and 24-bit firmware versions render dot-joined, most significant first."""
    measurements = parse_bthome(bytes([0x40, 0xF1, 0x00, 0x01, 0x02, 0x04])).measurements
    properties, sensors = split_measurements(measurements)
    assert properties == {"firmwareVersion": "4.2.1.0"}
    assert sensors == []

    measurements = parse_bthome(bytes([0x40, 0xF2, 0x00, 0x01, 0x01])).measurements
    properties, _ = split_measurements(measurements)
    assert properties == {"firmwareVersion": "1.1.0"}


def test_split_without_properties():
    measurements = parse_bthome(bytes([0x40, 0x02, 0xCA, 0x09])).measurements

    properties, sensors = split_measurements(measurements)

    assert properties == {}
    assert sensors == measurements


def test_split_with_custom_catalog():
    """Test a device property that only a caller-supplied catalog knows about."""
    catalog = dict(CATALOG)
    catalog[0xF3] = CatalogEntry(
        0xF3, "hardware_revision", 1, SemanticKind.DEVICE_PROPERTY,
        property_name="hardwareRevision",
    )
    measurements = parse_bthome(bytes([0x40, 0xF3, 0x03, 0x01, 0x64]), catalog).measurements

    properties, sensors = split_measurements(measurements, catalog)

    assert properties == {"hardwareRevision": "3"}
    assert [m.object_id for m in sensors] == [0x01]
