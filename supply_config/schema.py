"""
LedgerConfig schema.

The typed form of a configuration set.  YAML files are parsed into these
frozen dataclasses by ``supply_config.loader``; nothing else in the system
reads configuration files.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class StorageConfig:
    """Where and how the ledger is persisted."""

    database_url: str
    echo: bool = False
    sqlite_timeout: float = 30.0
    pool_size: int = 10
    max_overflow: int = 10


@dataclass(frozen=True)
class SeedConfig:
    """Initial stock written when neither a ledger nor legacy data exists."""

    labels: tuple[str, ...] = ()
    quantity: int = 20


@dataclass(frozen=True)
class AlertConfig:
    """Stock alert thresholds."""

    low_stock_threshold: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerConfig:
    """A complete, parsed configuration set."""

    config_id: str
    version: int
    checksum: str
    storage: StorageConfig
    seed: SeedConfig = field(default_factory=SeedConfig)
    alerts: AlertConfig = field(default_factory=AlertConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    default_user: str = "unknown"
