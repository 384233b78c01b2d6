"""Configuration loading from YAML."""

import logging
from pathlib import Path

import yaml

from .exceptions import ConfigError
from .models import DEFAULT_GATTTOOL, DEFAULT_INTERVAL, AppConfig, PollerConfig

logger = logging.getLogger(__name__)


def load_config(config_path: Path) -> AppConfig:
    """Load configuration from a YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not data:
        data = {}

    default_gatttool = data.get("gatttool", DEFAULT_GATTTOOL)
    default_interval = data.get("interval", DEFAULT_INTERVAL)

    sensors = []
    for sensor_data in data.get("sensors", []):
        try:
            sensor = PollerConfig(
                mac_address=sensor_data["mac"],
                record_name=sensor_data["record"],
                interval=float(sensor_data.get("interval", default_interval)),
                gatttool=sensor_data.get("gatttool", default_gatttool),
            )
        except (KeyError, ValueError, TypeError, ConfigError) as e:
            logger.warning("Invalid sensor configuration: %s - %s", sensor_data, e)
            continue

        if any(s.record_name == sensor.record_name for s in sensors):
            logger.warning("Duplicate record name, skipping sensor: %s", sensor.record_name)
            continue

        sensors.append(sensor)
        logger.debug("Loaded sensor: %s (%s)", sensor.record_name, sensor.mac_address)

    api_port = data.get("api_port")
    if api_port is not None:
        try:
            api_port = int(api_port)
        except (ValueError, TypeError):
            logger.warning("Invalid api_port value: %s", api_port)
            api_port = None

    config = AppConfig(sensors=sensors, api_port=api_port)
    logger.info("Loaded configuration with %d sensors", len(sensors))
    return config
