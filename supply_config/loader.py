"""
Configuration Loader (``supply_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``supply_config.schema`` dataclasses.  Runtime callers go through
``supply_config.get_active_config()`` instead of calling this directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values (negative quantities, unknown log level)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from supply_config.schema import (
    AlertConfig,
    LedgerConfig,
    LoggingConfig,
    SeedConfig,
    StorageConfig,
)
from supply_kernel.domain.labels import normalize_label
from supply_kernel.domain.quantity import MAX_QUANTITY


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_storage(data: dict[str, Any]) -> StorageConfig:
    timeout = float(data.get("sqlite_timeout", 30.0))
    if timeout <= 0:
        raise ValueError(f"sqlite_timeout must be positive, got {timeout}")
    return StorageConfig(
        database_url=data["database_url"],
        echo=bool(data.get("echo", False)),
        sqlite_timeout=timeout,
        pool_size=int(data.get("pool_size", 10)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_seed(data: dict[str, Any]) -> SeedConfig:
    quantity = int(data.get("quantity", 20))
    if not 0 < quantity <= MAX_QUANTITY:
        raise ValueError(f"Seed quantity must be in 1..{MAX_QUANTITY}, got {quantity}")
    labels = tuple(normalize_label(label) for label in data.get("labels", ()))
    return SeedConfig(labels=labels, quantity=quantity)


def parse_alerts(data: dict[str, Any]) -> AlertConfig:
    threshold = int(data.get("low_stock_threshold", 10))
    if threshold < 0:
        raise ValueError(f"low_stock_threshold cannot be negative, got {threshold}")
    return AlertConfig(low_stock_threshold=threshold)


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {level}")
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a complete ``LedgerConfig`` from a dict.

    ``config_id`` and ``storage.database_url`` are required; every other
    section falls back to its defaults.
    """
    return LedgerConfig(
        config_id=data["config_id"],
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        storage=parse_storage(data["storage"]),
        seed=parse_seed(data.get("seed") or {}),
        alerts=parse_alerts(data.get("alerts") or {}),
        logging=parse_logging(data.get("logging") or {}),
        default_user=str(data.get("default_user", "unknown")),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
