"""
supply_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads a YAML configuration set, parses it into a frozen
    ``LedgerConfig`` and applies the database URL override from the
    environment.

Architecture position:
    Configuration -- sits above ``supply_kernel`` and below
    ``supply_services``.  The kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``KeyError`` / ``ValueError`` -- missing or invalid settings.

Audit relevance:
    Every successful call emits a ``SUPPLY_CONFIG_TRACE`` log record with
    the config id, version, checksum and the effective database backend.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from supply_config.loader import load_yaml_file, parse_config
from supply_config.schema import (
    AlertConfig,
    LedgerConfig,
    LoggingConfig,
    SeedConfig,
    StorageConfig,
)

_logger = logging.getLogger("supply_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"
DATABASE_URL_ENV = "SUPPLY_LEDGER_DATABASE_URL"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        path: Configuration file.  Defaults to supply_config/sets/default.yaml.

    Returns:
        The parsed configuration.  When ``SUPPLY_LEDGER_DATABASE_URL`` is set
        it replaces ``storage.database_url``; the checksum still identifies
        the file as written.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    override = os.environ.get(DATABASE_URL_ENV)
    if override:
        config = replace(config, storage=replace(config.storage, database_url=override))

    _logger.info(
        "SUPPLY_CONFIG_TRACE",
        extra={
            "trace_type": "SUPPLY_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "database_backend": config.storage.database_url.split(":", 1)[0],
            "database_url_overridden": bool(override),
            "seed_label_count": len(config.seed.labels),
        },
    )
    return config


__all__ = [
    "AlertConfig",
    "DATABASE_URL_ENV",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "LoggingConfig",
    "SeedConfig",
    "StorageConfig",
    "get_active_config",
]
