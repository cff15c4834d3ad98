"""
Configuration handling for lane-broker.

Loads configuration from YAML files with defaults that reproduce the
single-node, fifty-job queueing scenario.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from lane_broker.placement import POLICIES

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


@dataclass
class Config:
    """Configuration for a lane-broker run."""

    # Nodes
    node_count: int = 1
    node_lanes: int = 4
    lane_rate: float = 1000.0  # Work units per second per lane
    node_memory: int = 16384
    node_bandwidth: int = 1000
    node_storage: int = 10000

    # Workload
    job_count: int = 50
    job_lanes: int = 4
    job_length: float = 10000.0  # Work units per lane
    job_memory: int = 1024
    job_bandwidth: int = 100
    job_storage: int = 1024

    # Broker
    policy: str = "best-fit"

    # Logging
    log_level: str = "WARNING"
    log_file: Optional[str] = None

    def validate(self) -> Config:
        """
        Check that the configuration describes a runnable scenario.

        Returns:
            The same config, for chaining

        Raises:
            ValueError: If a count is not a positive integer, a resource
                amount is negative, or the policy or log level is unknown
        """
        counts = {
            "node_count": self.node_count,
            "node_lanes": self.node_lanes,
            "job_count": self.job_count,
            "job_lanes": self.job_lanes,
        }
        for name, value in counts.items():
            # bool is an int subclass; YAML turns "yes" into True
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")

        rates = {"lane_rate": self.lane_rate, "job_length": self.job_length}
        for name, value in rates.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")

        positive = {
            "node_count": self.node_count,
            "node_lanes": self.node_lanes,
            "lane_rate": self.lane_rate,
            "job_lanes": self.job_lanes,
            "job_length": self.job_length,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.job_count < 0:
            raise ValueError(f"job_count must not be negative, got {self.job_count}")

        amounts = {
            "node_memory": self.node_memory,
            "node_bandwidth": self.node_bandwidth,
            "node_storage": self.node_storage,
            "job_memory": self.job_memory,
            "job_bandwidth": self.job_bandwidth,
            "job_storage": self.job_storage,
        }
        for name, value in amounts.items():
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")

        if self.policy not in POLICIES:
            raise ValueError(f"Unknown placement policy {self.policy!r}")
        if _log_level(self.log_level) is None:
            raise ValueError(f"Unknown log_level {self.log_level!r}")
        return self


def load_config(path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Searches for config in order:
    1. Explicit path argument
    2. ./lane-broker.yaml
    3. ~/.lane-broker.yaml
    4. ~/.config/lane-broker/config.yaml

    If no file found, returns default configuration.

    Args:
        path: Explicit path to config file

    Returns:
        Config object
    """
    search_paths = []

    if path:
        search_paths.append(Path(path))
    else:
        search_paths.extend(
            [
                Path("lane-broker.yaml"),
                Path.home() / ".lane-broker.yaml",
                Path.home() / ".config" / "lane-broker" / "config.yaml",
            ]
        )

    for config_path in search_paths:
        if config_path.exists():
            return _load_yaml_config(config_path)

    return Config()


def _load_yaml_config(path: Path) -> Config:
    """Load config from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    # Flatten nested structure
    node = data.get("node", {})
    workload = data.get("workload", {})
    broker = data.get("broker", {})
    logging_section = data.get("logging", {})

    return Config(
        # Nodes
        node_count=node.get("count", 1),
        node_lanes=node.get("lanes", 4),
        lane_rate=node.get("lane_rate", 1000.0),
        node_memory=node.get("memory", 16384),
        node_bandwidth=node.get("bandwidth", 1000),
        node_storage=node.get("storage", 10000),
        # Workload
        job_count=workload.get("jobs", 50),
        job_lanes=workload.get("lanes", 4),
        job_length=workload.get("length", 10000.0),
        job_memory=workload.get("memory", 1024),
        job_bandwidth=workload.get("bandwidth", 100),
        job_storage=workload.get("storage", 1024),
        # Broker
        policy=broker.get("policy", "best-fit"),
        # Logging
        log_level=logging_section.get("level", "WARNING"),
        log_file=logging_section.get("file"),
    )


def _log_level(name) -> Optional[int]:
    """Map a level name such as "info" to its logging constant."""
    level = getattr(logging, str(name).upper(), None)
    return level if isinstance(level, int) else None


def configure_logging(config: Config) -> None:
    """
    Configure the root logger from the config's logging section.

    Writes to the configured log file, or to stderr when none is set.
    """
    level = _log_level(config.log_level)
    if level is None:
        raise ValueError(f"Unknown log level {config.log_level!r}")

    if config.log_file:
        logging.basicConfig(
            filename=config.log_file,
            level=level,
            encoding="utf-8",
            format=LOG_FORMAT,
            force=True,
        )
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
