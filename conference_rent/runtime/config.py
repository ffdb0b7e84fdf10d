"""
Configuration Loader
====================

Loads configuration for the booking system from YAML.

Example file:

    topology:
      snapshot_exchange: agentBuildFanoutExchange
    buildings:
      count: 2
      rooms_per_building: 3
    agents:
      count: 2
    customer:
      request_timeout_seconds: 30
    logging:
      level: INFO
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional

import yaml

from ..exceptions import ConfigurationError
from ..transport import BusTopology

logger = logging.getLogger(__name__)


@dataclass
class BuildingsConfig:
    """How many Buildings to start and which rooms they get."""
    count: int = 2
    rooms_per_building: int = 3
    room_ids: List[str] = field(default_factory=list)  # overrides rooms_per_building


@dataclass
class AgentsConfig:
    count: int = 2


@dataclass
class CustomerConfig:
    request_timeout_seconds: Optional[float] = 30.0  # None waits forever


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    """Complete system configuration."""
    topology: BusTopology
    buildings: BuildingsConfig
    agents: AgentsConfig
    customer: CustomerConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> "Config":
        return cls(
            topology=BusTopology(),
            buildings=BuildingsConfig(),
            agents=AgentsConfig(),
            customer=CustomerConfig(),
            logging=LoggingConfig(),
        )


def _topology_from(data: dict) -> BusTopology:
    known = {f.name for f in fields(BusTopology)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(f"Unknown topology keys: {sorted(unknown)}")
    return BusTopology(**{key: str(value) for key, value in data.items()})


def _section(data: dict, name: str) -> dict:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"{name} must be a mapping")
    return section


def _number(convert, key: str, value):
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from e


def validate_config(config: Config) -> Config:
    """
    Reject values the runtime cannot work with.

    Raises:
        ConfigurationError: On the first invalid value
    """
    if config.buildings.count < 1:
        raise ConfigurationError("buildings.count must be at least 1")
    if config.buildings.rooms_per_building < 1 and not config.buildings.room_ids:
        raise ConfigurationError("buildings.rooms_per_building must be at least 1")
    if len(set(config.buildings.room_ids)) != len(config.buildings.room_ids):
        raise ConfigurationError("buildings.room_ids must be unique")
    if config.agents.count < 1:
        raise ConfigurationError("agents.count must be at least 1")
    timeout = config.customer.request_timeout_seconds
    if timeout is not None and timeout <= 0:
        raise ConfigurationError("customer.request_timeout_seconds must be positive or null")
    if logging.getLevelName(config.logging.level.upper()) == f"Level {config.logging.level.upper()}":
        raise ConfigurationError(f"Unknown logging level: {config.logging.level}")
    return config


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file or return defaults.

    Args:
        config_path: Path to YAML config file (optional)

    Returns:
        Config object with all settings

    Raises:
        ConfigurationError: If a section or value has the wrong shape
    """
    if config_path is None:
        return Config.default()

    path = Path(config_path)
    if not path.exists():
        logger.warning(f"{config_path} not found, using defaults")
        return Config.default()

    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")

    buildings_data = _section(data, "buildings")
    agents_data = _section(data, "agents")
    customer_data = _section(data, "customer")
    logging_data = _section(data, "logging")

    room_ids = buildings_data.get("room_ids") or []
    if not isinstance(room_ids, list):
        raise ConfigurationError("buildings.room_ids must be a list")
    timeout = customer_data.get("request_timeout_seconds", 30.0)

    config = Config(
        topology=_topology_from(_section(data, "topology")),
        buildings=BuildingsConfig(
            count=_number(int, "buildings.count", buildings_data.get("count", 2)),
            rooms_per_building=_number(
                int, "buildings.rooms_per_building", buildings_data.get("rooms_per_building", 3)
            ),
            room_ids=[str(r) for r in room_ids],
        ),
        agents=AgentsConfig(
            count=_number(int, "agents.count", agents_data.get("count", 2)),
        ),
        customer=CustomerConfig(
            request_timeout_seconds=(
                None if timeout is None
                else _number(float, "customer.request_timeout_seconds", timeout)
            ),
        ),
        logging=LoggingConfig(
            level=str(logging_data.get("level", "INFO")),
        ),
    )
    return validate_config(config)
