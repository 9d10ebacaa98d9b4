# ABOUTME: HTTP server for exposing metrics, health, scan status and device state
# ABOUTME: Provides /healthz, /metrics, /status and /devices endpoints via aiohttp
from dataclasses import dataclass
from typing import Optional
from aiohttp import web

from prometheus_client import generate_latest

from bthome_exporter.config import AppConfig
from bthome_exporter.handler import BTHomeDeviceHandler


@dataclass
class StatusTracker:
    """Tracks scan status and metadata for /status endpoint."""
    scan_interval_seconds: int
    scan_duration_seconds: int
    last_scan_timestamp: int = 0
    devices_seen: int = 0
    packets_processed: int = 0
    packets_failed: int = 0

    def update(self, timestamp: int, num_devices: int, processed: int = 0, failed: int = 0) -> None:
        """Update scan status with latest scan results."""
        self.last_scan_timestamp = timestamp
        self.devices_seen = num_devices
        self.packets_processed += processed
        self.packets_failed += failed


# AppKey for type-safe access to config, status and device handlers
CONFIG_KEY = web.AppKey('config', AppConfig)
STATUS_KEY = web.AppKey('status', StatusTracker)
DEVICES_KEY = web.AppKey('devices', dict)


async def healthz_handler(request: web.Request) -> web.Response:
    """Health check endpoint, always 200 OK with "ok" body."""
    return web.Response(text="ok", status=200)


async def metrics_handler(request: web.Request) -> web.Response:
    """
    Prometheus metrics endpoint.

    Returns:
        200 OK with Prometheus metrics in text format
    """
    metrics_output = generate_latest()
    return web.Response(
        body=metrics_output,
        content_type='text/plain',
        charset='utf-8'
    )


async def status_handler(request: web.Request) -> web.Response:
    """
    Status endpoint returning scan metadata.

    Returns:
        200 OK with JSON containing scan status
    """
    status = request.app[STATUS_KEY]

    status_data = {
        "scan_interval_seconds": status.scan_interval_seconds,
        "scan_duration_seconds": status.scan_duration_seconds,
        "last_scan_timestamp": status.last_scan_timestamp,
        "devices_seen": status.devices_seen,
        "packets_processed": status.packets_processed,
        "packets_failed": status.packets_failed,
    }

    return web.json_response(status_data)


async def devices_handler(request: web.Request) -> web.Response:
    """
    Device endpoint returning every configured device with its channels.

    Returns:
        200 OK with JSON list of device snapshots (status, properties, channel values)
    """
    handlers: dict[str, BTHomeDeviceHandler] = request.app[DEVICES_KEY]
    return web.json_response([handler.entity.to_dict() for handler in handlers.values()])


def create_app(
    config: AppConfig,
    status_tracker: Optional[StatusTracker] = None,
    handlers: Optional[dict[str, BTHomeDeviceHandler]] = None,
) -> web.Application:
    """
    Create and configure aiohttp application.

    Args:
        config: Application configuration
        status_tracker: Optional StatusTracker for /status endpoint
        handlers: Optional MAC address -> device handler mapping for /devices

    Returns:
        Configured aiohttp Application instance
    """
    app = web.Application()

    app[CONFIG_KEY] = config

    if status_tracker is None:
        status_tracker = StatusTracker(
            scan_interval_seconds=config.scan_interval_seconds,
            scan_duration_seconds=config.scan_duration_seconds
        )
    app[STATUS_KEY] = status_tracker
    app[DEVICES_KEY] = handlers if handlers is not None else {}

    app.router.add_get('/healthz', healthz_handler)
    app.router.add_get('/metrics', metrics_handler)
    app.router.add_get('/status', status_handler)
    app.router.add_get('/devices', devices_handler)

    return app
