"""Configuration loading for journalsync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class RemoteConfig:
    """Remote keyed document store."""

    base_url: str = "http://localhost:9000/entries"
    timeout: float = 30.0  # Seconds per request


@dataclass
class StoreConfig:
    db_path: str = "~/.journalsync/journal.db"


@dataclass
class SyncConfig:
    """Configuration for pull/push behaviour."""

    pull_on_start: bool = True
    single_flight: bool = True  # Overlapping pulls share one fetch


@dataclass
class Config:
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with JOURNALSYNC_ prefix."""
    return os.environ.get(f"JOURNALSYNC_{key}", default)


def _is_true(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Remote overrides
    if url := _get_env("REMOTE_URL"):
        config.remote.base_url = url
    if timeout := _get_env("REMOTE_TIMEOUT"):
        config.remote.timeout = float(timeout)

    # Store overrides
    if db_path := _get_env("DB_PATH"):
        config.store.db_path = db_path

    # Sync overrides
    if pull_on_start := _get_env("PULL_ON_START"):
        config.sync.pull_on_start = _is_true(pull_on_start)
    if single_flight := _get_env("SINGLE_FLIGHT"):
        config.sync.single_flight = _is_true(single_flight)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None or missing, uses defaults.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse remote config
            if "remote" in data:
                remote_data = data["remote"]
                config.remote = RemoteConfig(
                    base_url=remote_data.get("base_url", config.remote.base_url),
                    timeout=float(remote_data.get("timeout", config.remote.timeout)),
                )

            # Parse store config
            if "store" in data:
                config.store = StoreConfig(
                    db_path=data["store"].get("db_path", config.store.db_path)
                )

            # Parse sync config
            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    pull_on_start=sync_data.get(
                        "pull_on_start", config.sync.pull_on_start
                    ),
                    single_flight=sync_data.get(
                        "single_flight", config.sync.single_flight
                    ),
                )

    return _apply_env_overrides(config)
