# ABOUTME: Configuration parser for the BTHome exporter
# ABOUTME: Loads and validates YAML config with scan timing, devices and reporting expectations
from dataclasses import dataclass
from typing import Dict

import yaml


DEFAULT_LOG_FILE = "./logs/bthome_exporter.log"
DEFAULT_REPORTING_INTERVAL_SECONDS = 3600
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class AppConfig:
    """Application configuration loaded from YAML file."""
    scan_interval_seconds: int
    scan_duration_seconds: int
    listen_port: int
    devices: Dict[str, str]  # MAC address -> friendly name mapping
    log_file: str = DEFAULT_LOG_FILE
    # A device silent for 1.1x this long is reported offline
    expected_reporting_interval_seconds: int = DEFAULT_REPORTING_INTERVAL_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL


def load_config(path: str) -> AppConfig:
    """
    Load and validate application configuration from YAML file.

    Args:
        path: Path to YAML config file

    Returns:
        AppConfig instance with validated configuration

    Raises:
        ValueError: If config is invalid or missing required keys
    """
    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ValueError(f"Config file not found: {path}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a YAML mapping")

    required_keys = ['scan_interval_seconds', 'scan_duration_seconds', 'listen_port', 'devices']
    missing_keys = [key for key in required_keys if key not in data]
    if missing_keys:
        raise ValueError(f"Missing required config keys: {', '.join(missing_keys)}")

    if not isinstance(data['devices'], dict):
        raise ValueError("'devices' must be a mapping of MAC addresses to names")

    interval = data.get('expected_reporting_interval_seconds', DEFAULT_REPORTING_INTERVAL_SECONDS)
    if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
        raise ValueError("'expected_reporting_interval_seconds' must be a positive integer")

    log_level = str(data.get('log_level', DEFAULT_LOG_LEVEL)).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"'log_level' must be one of: {', '.join(LOG_LEVELS)}")

    # BLE stacks report MAC addresses in upper case
    devices = {str(mac).upper(): name for mac, name in data['devices'].items()}

    return AppConfig(
        scan_interval_seconds=data['scan_interval_seconds'],
        scan_duration_seconds=data['scan_duration_seconds'],
        listen_port=data['listen_port'],
        devices=devices,
        log_file=data.get('log_file', DEFAULT_LOG_FILE),
        expected_reporting_interval_seconds=interval,
        log_level=log_level,
    )
