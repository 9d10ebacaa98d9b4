# ABOUTME: BLE scanning abstraction for passive BTHome advertisement listening
# ABOUTME: Provides Protocol interface, bleak implementation and MockScanner for testing without hardware
from typing import Protocol, Optional
import asyncio
from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData


# BTHome service data UUID (16-bit 0xFCD2)
BTHOME_SERVICE_UUID = "0000fcd2-0000-1000-8000-00805f9b34fb"


class AbstractScanner(Protocol):
    """Protocol for BLE scanners that return MAC address and payload tuples."""

    async def scan(self, duration_s: int) -> list[tuple[str, bytes]]:
        """
        Scan for BLE advertisements for the specified duration.

        Args:
            duration_s: Duration to scan in seconds

        Returns:
            List of (mac_address, payload_bytes) tuples in arrival order
        """
        ...


class BleakScannerImpl:
    """
    Real BLE scanner implementation using bleak library.

    Collects the BTHome service data of every advertisement, in arrival order.
    Sensors that alternate between packet types (measurements, battery) and
    retransmissions are all kept; the packet handler sorts them out.
    """

    def __init__(self):
        """Initialize the BLE scanner."""
        self.advertisements: list[tuple[str, bytes]] = []

    def _detection_callback(self, device: BLEDevice, advertisement_data: AdvertisementData):
        """
        Callback invoked when a BLE advertisement is detected.

        Args:
            device: BLE device information
            advertisement_data: Advertisement data including service data
        """
        data = advertisement_data.service_data.get(BTHOME_SERVICE_UUID)
        if data:
            self.advertisements.append((device.address.upper(), bytes(data)))

    async def scan(self, duration_s: int) -> list[tuple[str, bytes]]:
        """
        Scan for BLE advertisements using bleak.

        Args:
            duration_s: Duration to scan in seconds

        Returns:
            List of (mac_address, payload_bytes) tuples containing BTHome service data

        Raises:
            RuntimeError: If BLE adapter is unavailable or scanning fails
        """
        self.advertisements = []

        try:
            scanner = BleakScanner(detection_callback=self._detection_callback)
            await scanner.start()
            await asyncio.sleep(duration_s)
            await scanner.stop()
        except Exception as e:
            raise RuntimeError(f"BLE scan failed: {e}") from e

        return list(self.advertisements)


class MockScanner:
    """
    Mock BLE scanner for testing without hardware.

    Returns preconfigured list of (MAC, payload) tuples on each scan() call.
    """

    def __init__(self, data: Optional[list[tuple[str, bytes]]] = None):
        """
        Initialize mock scanner with test data.

        Args:
            data: List of (mac_address, payload_bytes) tuples to return on scan
        """
        self.data = data or []

    async def scan(self, duration_s: int) -> list[tuple[str, bytes]]:
        """Return preconfigured mock data (duration is ignored)."""
        await asyncio.sleep(0.01)
        return self.data.copy()


def get_scanner(use_mock: bool = False, data: Optional[list[tuple[str, bytes]]] = None) -> AbstractScanner:
    """
    Factory function to get appropriate scanner implementation.

    Args:
        use_mock: If True, return MockScanner; otherwise return BleakScannerImpl
        data: Test data for MockScanner (only used when use_mock=True)

    Returns:
        Scanner instance implementing AbstractScanner protocol
    """
    if use_mock:
        return MockScanner(data)
    return BleakScannerImpl()
