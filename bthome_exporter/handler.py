# ABOUTME: Per-device BTHome packet pipeline: decode, dedup, split, reconcile, project
# ABOUTME: Drives a device entity's channels, values, properties and availability from raw payloads
import logging
import time
from enum import Enum
from typing import Optional

from bthome_exporter.catalog import CatalogEntry
from bthome_exporter.channels import assign_channels, group_by_object_id, reconcile
from bthome_exporter.dedup import DedupState, is_duplicate, record_packet
from bthome_exporter.entity import DeviceEntity, DeviceStatus
from bthome_exporter.exceptions import BTHomeDecodeError
from bthome_exporter.parser import parse_bthome
from bthome_exporter.projector import EventTrigger, UnitResolver, project, resolve_unit
from bthome_exporter.properties import split_measurements

DEFAULT_REPORTING_INTERVAL_SECONDS = 3600

# A device is declared offline after this many expected reporting intervals of silence
LIVENESS_FACTOR = 1.1

DECODE_ERROR_MESSAGE = "Error processing BTHome data. Only latest version (V2) is supported: "
NO_DATA_MESSAGE = "No data received for some time"


class PacketOutcome(Enum):
    EMPTY = "empty"
    DUPLICATE = "duplicate"
    PROCESSED = "processed"
    FAILED = "failed"


class BTHomeDeviceHandler:
    """
    Processes the BTHome payloads of one device.

    Keeps the only state that survives between packets (the last packet id and
    the last payload). Calls must be serialized per device; the handler does no
    locking of its own.
    """

    def __init__(
        self,
        entity: DeviceEntity,
        expected_reporting_interval_seconds: int = DEFAULT_REPORTING_INTERVAL_SECONDS,
        unit_resolver: UnitResolver = resolve_unit,
        logger: Optional[logging.Logger] = None,
        catalog: Optional[dict[int, CatalogEntry]] = None,
    ):
        """
        Initialize the handler.

        Args:
            entity: Device entity receiving channels, values and status
            expected_reporting_interval_seconds: How often the device normally reports
            unit_resolver: Maps unit symbols to known units
            logger: Logger instance (defaults to the bthome_exporter.handler logger)
            catalog: Object id catalog (defaults to the built-in BTHome v2 table)
        """
        self.entity = entity
        self.expected_reporting_interval_seconds = expected_reporting_interval_seconds
        self.unit_resolver = unit_resolver
        self.logger = logger or logging.getLogger('bthome_exporter.handler')
        self.catalog = catalog
        self.dedup_state = DedupState()
        self.cached_payload = b""
        # Time of the last non-empty payload, duplicates and decode failures included
        self.last_heard: Optional[float] = None

    def on_service_data(self, payload: bytes, now: Optional[float] = None) -> PacketOutcome:
        """Handle service data from a received advertisement, keeping it for refresh()."""
        now = time.time() if now is None else now
        if payload:
            self.logger.debug(f"Received BTHome data from {self.entity.name}: {payload.hex()}")
            self.cached_payload = bytes(payload)
            self.last_heard = now
        return self.process_packet(payload, now=now)

    def refresh(self, now: Optional[float] = None) -> PacketOutcome:
        """Republish the last received payload, even if its packet id was already seen."""
        return self.process_packet(self.cached_payload, force=True, now=now)

    def process_packet(self, payload: bytes, force: bool = False,
                       now: Optional[float] = None) -> PacketOutcome:
        """
        Run one payload through the pipeline.

        A payload that fails to decode changes nothing but availability: every
        channel value becomes undefined and the device goes offline with the
        error attached. Channels and the last packet id stay as they were, so
        the next good packet recovers.

        Args:
            payload: BTHome service data, possibly empty
            force: Process the packet even if its packet id repeats the last one
            now: Timestamp of processing (defaults to time.time())

        Returns:
            What happened to the packet
        """
        if not payload:
            # Advertisements without service data are normal, nothing to do
            return PacketOutcome.EMPTY

        try:
            service_data = parse_bthome(payload, self.catalog)
        except BTHomeDecodeError as e:
            self.logger.error(f"Error processing BTHome data from {self.entity.name}: {e}")
            self.entity.invalidate()
            self.entity.update_status(DeviceStatus.OFFLINE, DECODE_ERROR_MESSAGE + str(e))
            return PacketOutcome.FAILED

        measurements = service_data.measurements
        if not force and is_duplicate(measurements, self.dedup_state):
            self.logger.debug(f"Skipping already processed packet from {self.entity.name}")
            return PacketOutcome.DUPLICATE

        self.entity.update_status(DeviceStatus.ONLINE)

        properties, sensor_measurements = split_measurements(measurements, self.catalog)
        if properties:
            self.entity.update_properties(properties)

        grouped = group_by_object_id(sensor_measurements)
        new_channels = reconcile(
            self.entity.channel_keys(), grouped, catalog=self.catalog, logger=self.logger
        )
        if new_channels:
            self.logger.info(
                f"Creating channels for {self.entity.name}: "
                f"{', '.join(spec.key.id for spec in new_channels)}"
            )
            self.entity.create_channels(new_channels)

        for key, measurement in assign_channels(grouped, self.catalog):
            value = project(measurement, key, self.unit_resolver, self.logger, self.catalog)
            if isinstance(value, EventTrigger):
                self.entity.trigger(key, value.label)
            else:
                self.entity.update_state(key, value)

        record_packet(measurements, self.dedup_state)
        self.entity.last_update = time.time() if now is None else now
        return PacketOutcome.PROCESSED

    def check_liveness(self, now: Optional[float] = None) -> bool:
        """
        Take an online device offline when it has been silent for too long.

        Any received payload counts, including retransmissions skipped as
        duplicates.

        Args:
            now: Current timestamp (defaults to time.time())

        Returns:
            False if the device was taken offline by this call, True otherwise
        """
        if self.entity.status != DeviceStatus.ONLINE or self.last_heard is None:
            return True

        now = time.time() if now is None else now
        deadline = self.expected_reporting_interval_seconds * LIVENESS_FACTOR
        if now - self.last_heard <= deadline:
            return True

        self.logger.warning(
            f"No data from {self.entity.name} for {int(now - self.last_heard)}s, "
            f"marking offline"
        )
        self.entity.invalidate()
        self.entity.update_status(DeviceStatus.OFFLINE, NO_DATA_MESSAGE)
        return False
