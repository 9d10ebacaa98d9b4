# ABOUTME: Tests for feeding one scan period of payloads to the device handlers
# ABOUTME: Tests routing by MAC address, accumulation across packets and failed-parse warnings
import logging
from unittest.mock import MagicMock
import pytest

from bthome_exporter.channels import ChannelKey
from bthome_exporter.config import AppConfig
from bthome_exporter.handler import PacketOutcome
from bthome_exporter.main import build_handlers, process_scan_results


@pytest.fixture
def mock_logger():
    """Create a mock logger."""
    logger = MagicMock(spec=logging.Logger)
    return logger


@pytest.fixture
def handlers(mock_logger):
    """Handlers for two configured devices."""
    config = AppConfig(
        scan_interval_seconds=30,
        scan_duration_seconds=5,
        listen_port=8000,
        devices={"A4:C1:38:11:22:33": "living_room", "A4:C1:38:44:55:66": "bedroom"},
    )
    return build_handlers(config, mock_logger)


def test_build_handlers(handlers):
    assert set(handlers) == {"A4:C1:38:11:22:33", "A4:C1:38:44:55:66"}
    assert handlers["A4:C1:38:11:22:33"].entity.name == "living_room"
    assert handlers["A4:C1:38:11:22:33"].entity.address == "A4:C1:38:11:22:33"
    assert handlers["A4:C1:38:11:22:33"].expected_reporting_interval_seconds == 3600


def test_single_device_single_packet(handlers, mock_logger):
    """Test one device and one complete packet."""
    packet = bytes([
        0x40,              # BTHome v2, unencrypted
        0x02, 0x66, 0x08,  # Temperature: 21.5°C
        0x2E, 0x2A,        # Humidity: 42%
        0x01, 0x55,        # Battery: 85%
    ])

    result = process_scan_results([("A4:C1:38:11:22:33", packet)], handlers, mock_logger)

    assert result == {"A4:C1:38:11:22:33": [PacketOutcome.PROCESSED]}
    states = handlers["A4:C1:38:11:22:33"].entity.states
    assert states[ChannelKey("temperature")].value == pytest.approx(21.5, abs=0.01)
    assert states[ChannelKey("humidity")].value == pytest.approx(42)
    assert states[ChannelKey("battery")].value == pytest.approx(85)

    mock_logger.warning.assert_not_called()


def test_single_device_alternating_packets(handlers, mock_logger):
    """Test a device that sends temperature in one packet and voltage in another."""
    packet1 = bytes([0x40, 0x00, 0x01, 0x02, 0x66, 0x08])  # Packet 1, temperature 21.5°C
    packet2 = bytes([0x40, 0x00, 0x02, 0x0C, 0x7B, 0x0B])  # Packet 2, voltage 2.939V

    result = process_scan_results(
        [("A4:C1:38:11:22:33", packet1), ("A4:C1:38:11:22:33", packet2)],
        handlers,
        mock_logger,
    )

    assert result["A4:C1:38:11:22:33"] == [PacketOutcome.PROCESSED, PacketOutcome.PROCESSED]
    states = handlers["A4:C1:38:11:22:33"].entity.states
    assert states[ChannelKey("temperature")].value == pytest.approx(21.5, abs=0.01)
    assert states[ChannelKey("voltage")].value == pytest.approx(2.939)

    mock_logger.warning.assert_not_called()


def test_retransmissions_are_deduplicated(handlers, mock_logger):
    """Test that the same advertisement received several times is processed once."""
    packet = bytes([0x40, 0x00, 0x07, 0x3A, 0x01])  # Packet 7, button press

    result = process_scan_results([("A4:C1:38:11:22:33", packet)] * 3, handlers, mock_logger)

    assert result["A4:C1:38:11:22:33"] == [
        PacketOutcome.PROCESSED, PacketOutcome.DUPLICATE, PacketOutcome.DUPLICATE
    ]
    assert handlers["A4:C1:38:11:22:33"].entity.drain_events() == [(ChannelKey("button"), "PRESS")]


def test_multiple_devices(handlers, mock_logger):
    """Test that payloads go to the handler of their own device."""
    scan_results = [
        ("A4:C1:38:11:22:33", bytes([0x40, 0x02, 0x66, 0x08])),
        ("A4:C1:38:44:55:66", bytes([0x40, 0x2E, 0x2A])),
        ("A4:C1:38:11:22:33", bytes([0x40, 0x01, 0x32])),
    ]

    process_scan_results(scan_results, handlers, mock_logger)

    living_room = handlers["A4:C1:38:11:22:33"].entity
    bedroom = handlers["A4:C1:38:44:55:66"].entity
    assert living_room.channel_keys() == {ChannelKey("temperature"), ChannelKey("battery")}
    assert bedroom.channel_keys() == {ChannelKey("humidity")}

    mock_logger.warning.assert_not_called()


def test_lowercase_mac_is_matched(handlers, mock_logger):
    result = process_scan_results(
        [("a4:c1:38:11:22:33", bytes([0x40, 0x01, 0x32]))], handlers, mock_logger
    )

    assert result == {"A4:C1:38:11:22:33": [PacketOutcome.PROCESSED]}


def test_all_parses_fail_for_known_device(handlers, mock_logger):
    """Test that a warning is logged when all packets from a known device fail to parse."""
    scan_results = [
        ("A4:C1:38:11:22:33", bytes([0x41, 0x02, 0x66])),  # Encrypted
        ("A4:C1:38:11:22:33", bytes([0x40, 0xFF])),        # Unknown object id
    ]

    result = process_scan_results(scan_results, handlers, mock_logger)

    assert result["A4:C1:38:11:22:33"] == [PacketOutcome.FAILED, PacketOutcome.FAILED]

    mock_logger.warning.assert_called_once()
    warning_msg = mock_logger.warning.call_args[0][0]
    assert "A4:C1:38:11:22:33" in warning_msg
    assert "all packets failed to parse" in warning_msg.lower()


def test_unknown_device_is_ignored(handlers, mock_logger):
    """Test that devices not in the config are skipped, even with bad payloads."""
    scan_results = [
        ("FF:FF:FF:FF:FF:FF", bytes([0x41])),
        ("FF:FF:FF:FF:FF:FF", bytes([0x40, 0x02, 0x66, 0x08])),
    ]

    result = process_scan_results(scan_results, handlers, mock_logger)

    assert result == {}
    mock_logger.warning.assert_not_called()
    mock_logger.error.assert_not_called()


def test_partial_parse_failures(handlers, mock_logger):
    """Test a device with a mix of successful and failed parses."""
    scan_results = [
        ("A4:C1:38:11:22:33", bytes([0x40, 0x00, 0x01, 0x02, 0x66, 0x08])),
        ("A4:C1:38:11:22:33", bytes([0x40, 0x02])),  # Truncated temperature
    ]

    result = process_scan_results(scan_results, handlers, mock_logger)

    assert result["A4:C1:38:11:22:33"] == [PacketOutcome.PROCESSED, PacketOutcome.FAILED]
    mock_logger.warning.assert_not_called()


def test_last_value_wins(handlers, mock_logger):
    """Test that later packets overwrite earlier channel values."""
    scan_results = [
        ("A4:C1:38:11:22:33", bytes([0x40, 0x00, 0x01, 0x02, 0x66, 0x08])),  # 21.5°C
        ("A4:C1:38:11:22:33", bytes([0x40, 0x00, 0x02, 0x02, 0x00, 0x0A])),  # 25.6°C
    ]

    process_scan_results(scan_results, handlers, mock_logger)

    states = handlers["A4:C1:38:11:22:33"].entity.states
    assert states[ChannelKey("temperature")].value == pytest.approx(25.6, abs=0.01)


def test_empty_scan_results(handlers, mock_logger):
    result = process_scan_results([], handlers, mock_logger)

    assert result == {}
    mock_logger.warning.assert_not_called()


def test_no_configured_devices(mock_logger):
    """Test processing when no MACs are configured."""
    result = process_scan_results(
        [("A4:C1:38:11:22:33", bytes([0x40, 0x02, 0x66, 0x08]))], {}, mock_logger
    )

    assert result == {}
    mock_logger.warning.assert_not_called()
