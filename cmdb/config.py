"""
Configuration management for the CMDB core.

Configuration is read from environment variables. This module provides
typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local use
    - Invalid values fail fast in validate(), before the database is opened

How to change safely:
    - Add new settings with defaults that keep existing deployments working
    - Keep environment variable names prefixed with CMDB_
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .kv.sqlite import SYNCHRONOUS_MODES

logger = logging.getLogger(__name__)

LOG_FORMATS = ("text", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class StorageConfig:
    """Database file configuration.

    Attributes:
        path: SQLite database file
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
        cache_size_pages: SQLite cache size in pages (negative = KB)
        synchronous: SQLite synchronous pragma (OFF, NORMAL, FULL, EXTRA)
    """

    path: str = "cmdb.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000
    cache_size_pages: int = -64000  # 64MB
    synchronous: str = "NORMAL"

    @classmethod
    def from_env(cls) -> StorageConfig:
        """Load configuration from environment variables."""
        return cls(
            path=os.getenv("CMDB_DB_PATH", "cmdb.db"),
            wal_mode=os.getenv("CMDB_SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("CMDB_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            cache_size_pages=int(os.getenv("CMDB_SQLITE_CACHE_SIZE", "-64000")),
            synchronous=os.getenv("CMDB_SQLITE_SYNCHRONOUS", "NORMAL").upper(),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (text, json)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("CMDB_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("CMDB_LOG_FORMAT", "text").lower(),
        )


@dataclass
class CmdbConfig:
    """Complete CMDB configuration.

    Attributes:
        storage: Database file configuration
        observability: Logging configuration
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> CmdbConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If a value is missing or invalid.
        """
        config = cls(
            storage=StorageConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.storage.path:
            raise ValueError("CMDB_DB_PATH must not be empty")
        if self.storage.busy_timeout_ms < 0:
            raise ValueError("CMDB_SQLITE_BUSY_TIMEOUT_MS must be >= 0")
        if self.storage.synchronous.upper() not in SYNCHRONOUS_MODES:
            raise ValueError(
                f"Invalid CMDB_SQLITE_SYNCHRONOUS '{self.storage.synchronous}'. "
                f"Must be one of: {', '.join(SYNCHRONOUS_MODES)}"
            )
        if self.observability.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid CMDB_LOG_LEVEL '{self.observability.log_level}'")
        if self.observability.log_format not in LOG_FORMATS:
            raise ValueError(
                f"Invalid CMDB_LOG_FORMAT '{self.observability.log_format}'. Must be one of: text, json"
            )

        parent = os.path.dirname(os.path.abspath(self.storage.path))
        if not os.path.exists(parent):
            logger.warning(
                f"Database directory does not exist: {parent}. "
                "It will be created on open."
            )

    def log_config(self) -> None:
        """Log configuration."""
        logger.info(
            "CMDB configuration loaded",
            extra={
                "db_path": self.storage.path,
                "wal_mode": self.storage.wal_mode,
                "synchronous": self.storage.synchronous,
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        )
