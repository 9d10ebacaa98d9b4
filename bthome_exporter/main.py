# ABOUTME: Main entry point for the BTHome Prometheus exporter
# ABOUTME: Wires together scanner, per-device packet handlers, metrics and HTTP server
import argparse
import asyncio
import time
from aiohttp import web

from bthome_exporter.config import AppConfig, load_config
from bthome_exporter.logger import get_logger
from bthome_exporter.scanner import get_scanner
from bthome_exporter.entity import DeviceEntity, DeviceStatus
from bthome_exporter.handler import BTHomeDeviceHandler, PacketOutcome
from bthome_exporter.metrics import record_decode_error, update_metrics
from bthome_exporter.exporter import create_app, StatusTracker, DEVICES_KEY


def build_handlers(config: AppConfig, logger) -> dict[str, BTHomeDeviceHandler]:
    """
    Create one packet handler (and device entity) per configured device.

    Args:
        config: Application configuration
        logger: Logger instance shared by the handlers

    Returns:
        Dictionary mapping MAC address to its handler
    """
    return {
        mac: BTHomeDeviceHandler(
            DeviceEntity(name, address=mac),
            expected_reporting_interval_seconds=config.expected_reporting_interval_seconds,
            logger=logger,
        )
        for mac, name in config.devices.items()
    }


def process_scan_results(
    scan_results: list[tuple[str, bytes]],
    handlers: dict[str, BTHomeDeviceHandler],
    logger
) -> dict[str, list[PacketOutcome]]:
    """
    Feed the payloads of one scan period to their device handlers.

    Payloads are processed in arrival order, so a sensor alternating between
    measurement and battery packets ends up with both sets of channels, and
    retransmissions of the same packet id are dropped by the handler.

    Args:
        scan_results: List of (mac_address, payload) tuples from scanner
        handlers: MAC address -> handler mapping for configured devices
        logger: Logger instance for warnings

    Returns:
        Dictionary mapping each configured MAC seen in the scan to the
        outcomes of its packets

    Behavior:
        - Payloads from unknown devices are ignored
        - A failed payload does not affect the device's other payloads
        - Warns if a known MAC was seen but ALL its packets failed to decode
    """
    outcomes: dict[str, list[PacketOutcome]] = {}

    for mac, payload in scan_results:
        handler = handlers.get(mac.upper())
        if handler is None:
            continue
        outcome = handler.on_service_data(payload)
        if outcome == PacketOutcome.FAILED:
            record_decode_error(handler.entity.name)
        outcomes.setdefault(mac.upper(), []).append(outcome)

    for mac, results in outcomes.items():
        if all(outcome == PacketOutcome.FAILED for outcome in results):
            logger.warning(
                f"Device {mac} seen but all packets failed to parse. "
                f"Check sensor firmware or BTHome format compatibility."
            )

    return outcomes


async def scan_loop(scanner, config, status_tracker, logger, handlers=None):
    """
    Background task that continuously scans for BLE devices, runs their
    payloads through the packet handlers and updates metrics.

    Args:
        scanner: Scanner instance (MockScanner or BleakScannerImpl)
        config: Application configuration
        status_tracker: StatusTracker for updating scan metadata
        logger: Logger instance
        handlers: MAC address -> handler mapping (built from config if None)
    """
    if handlers is None:
        handlers = build_handlers(config, logger)

    while True:
        try:
            logger.info(f"Starting BLE scan for {config.scan_duration_seconds}s")
            results = await scanner.scan(config.scan_duration_seconds)

            outcomes = process_scan_results(results, handlers, logger)

            now = time.time()
            for handler in handlers.values():
                handler.check_liveness(now)

            devices_seen = 0
            processed = failed = 0
            for mac, handler in handlers.items():
                device_outcomes = outcomes.get(mac, [])
                processed += device_outcomes.count(PacketOutcome.PROCESSED)
                failed += device_outcomes.count(PacketOutcome.FAILED)
                if handler.entity.status == DeviceStatus.UNKNOWN:
                    continue
                update_metrics(handler.entity.name, handler.entity, seen=bool(device_outcomes))
                if device_outcomes and PacketOutcome.FAILED not in device_outcomes:
                    devices_seen += 1
                    logger.info(
                        f"Updated metrics for {handler.entity.name}: "
                        f"{handler.entity.to_dict()['channels']}"
                    )

            status_tracker.update(int(now), devices_seen, processed=processed, failed=failed)

            logger.info(f"Scan complete: {devices_seen} devices updated")

            sleep_duration = config.scan_interval_seconds - config.scan_duration_seconds
            if sleep_duration > 0:
                await asyncio.sleep(sleep_duration)
            else:
                logger.warning(
                    f"scan_interval_seconds ({config.scan_interval_seconds}) "
                    f"is less than scan_duration_seconds ({config.scan_duration_seconds}). "
                    f"Running scans back-to-back."
                )

        except Exception as e:
            logger.error(f"Error in scan loop: {e}", exc_info=True)
            await asyncio.sleep(5)


async def start_background_tasks(app):
    """
    Startup handler that launches the background scan loop.

    Args:
        app: aiohttp Application instance
    """
    scanner = app['scanner']
    config = app['config']
    status_tracker = app['status_tracker']
    logger = app['logger']
    handlers = app[DEVICES_KEY]

    app['scan_task'] = asyncio.create_task(
        scan_loop(scanner, config, status_tracker, logger, handlers)
    )


async def cleanup_background_tasks(app):
    """
    Cleanup handler that cancels the background scan loop.

    Args:
        app: aiohttp Application instance
    """
    app['scan_task'].cancel()
    try:
        await app['scan_task']
    except asyncio.CancelledError:
        pass  # Expected when cancelling the task


def main():
    """
    Main entry point. Parses CLI arguments, loads config, and starts the server.
    """
    parser = argparse.ArgumentParser(
        description='BTHome Sensor Prometheus Exporter'
    )
    parser.add_argument(
        '--config',
        type=str,
        required=True,
        help='Path to config YAML file'
    )
    parser.add_argument(
        '--mock-scanner',
        action='store_true',
        help='Use MockScanner instead of real BLE scanner (for testing)'
    )

    args = parser.parse_args()

    config = load_config(args.config)

    logger = get_logger(config)
    logger.info("Starting BTHome Sensor Prometheus Exporter")
    logger.info(f"Config loaded from {args.config}")

    scanner = get_scanner(use_mock=args.mock_scanner)
    if args.mock_scanner:
        logger.info("Using MockScanner (no real BLE hardware)")
    else:
        logger.info("Using BleakScanner for real BLE devices")

    status_tracker = StatusTracker(
        scan_interval_seconds=config.scan_interval_seconds,
        scan_duration_seconds=config.scan_duration_seconds
    )
    handlers = build_handlers(config, logger)

    app = create_app(config, status_tracker, handlers)

    # Store additional objects needed by background tasks
    app['scanner'] = scanner
    app['config'] = config
    app['status_tracker'] = status_tracker
    app['logger'] = logger

    app.on_startup.append(start_background_tasks)
    app.on_cleanup.append(cleanup_background_tasks)

    logger.info(f"Starting HTTP server on port {config.listen_port}")
    web.run_app(app, host='0.0.0.0', port=config.listen_port)


if __name__ == '__main__':
    main()
