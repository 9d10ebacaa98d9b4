# ABOUTME: Unit tests for packet id based deduplication
# ABOUTME: Tests duplicate detection, packets without ids and state updates
from bthome_exporter.dedup import DedupState, is_duplicate, packet_id_of, record_packet
from bthome_exporter.parser import parse_bthome


def _measurements(payload):
    return parse_bthome(bytes(payload)).measurements


def test_packet_id_of():
    assert packet_id_of(_measurements([0x40, 0x01, 0x64, 0x00, 0x09])) == 9
    assert packet_id_of(_measurements([0x40, 0x01, 0x64])) is None


def test_first_packet_is_not_duplicate():
    state = DedupState()

    assert not is_duplicate(_measurements([0x40, 0x00, 0x01, 0x01, 0x64]), state)


def test_same_packet_id_is_duplicate():
    """Test that a retransmission with the same packet id is detected."""
    state = DedupState()
    measurements = _measurements([0x40, 0x00, 0x01, 0x01, 0x64])

    record_packet(measurements, state)

    assert state.last_packet_id == 1
    assert is_duplicate(measurements, state)


def test_different_packet_id_proceeds():
    """Test that out-of-order but distinct packet ids are all processed."""
    state = DedupState(last_packet_id=5)

    assert not is_duplicate(_measurements([0x40, 0x00, 0x04]), state)
    assert not is_duplicate(_measurements([0x40, 0x00, 0x06]), state)


def test_wrapped_packet_id_proceeds():
    state = DedupState(last_packet_id=255)

    assert not is_duplicate(_measurements([0x40, 0x00, 0x00]), state)


def test_packet_without_id_always_proceeds():
    """Test that sensors without a packet id are never deduplicated."""
    state = DedupState(last_packet_id=3)
    measurements = _measurements([0x40, 0x01, 0x64])

    assert not is_duplicate(measurements, state)
    record_packet(measurements, state)
    assert state.last_packet_id == 3


def test_is_duplicate_does_not_mutate_state():
    state = DedupState()

    is_duplicate(_measurements([0x40, 0x00, 0x07]), state)

    assert state.last_packet_id is None
