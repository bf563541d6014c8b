"""
Capture the current replication log position of a source.

Designed as an extensible registry keyed by database type: add new
initializers without changing the bootstrapper.
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from typing import Callable, Dict

from sqlalchemy import text
from sqlalchemy.engine import Connection

import structlog

from cdc_control.config.settings import CDCSettings
from cdc_control.core.exceptions import UnsupportedDatabaseTypeError
from cdc_control.domain.position import BinlogPosition, IngestPosition, WalPosition

logger = structlog.get_logger(__name__)

SLOT_NAME_PREFIX = "cdc"


def get_unique_slot_name(database_name: str, slot_name_suffix: str) -> str:
    """Replication slot name of one job on one database; stable across retries."""
    digest = hashlib.md5(f"{database_name}_{slot_name_suffix}".encode("utf-8")).hexdigest()
    return f"{SLOT_NAME_PREFIX}_{digest}"


class PositionInitializer(ABC):
    """Reads the position incremental replication should start from."""

    @abstractmethod
    def init(self, connection: Connection, slot_name_suffix: str) -> IngestPosition:
        ...


class PostgreSQLPositionInitializer(PositionInitializer):
    """
    Ensures a logical replication slot exists, then reads the current LSN.

    The slot pins WAL from the captured position until the log reader
    attaches to it.
    """

    lsn_function = "pg_current_wal_lsn"

    def __init__(self, plugin: str = "test_decoding"):
        self.plugin = plugin

    def init(self, connection: Connection, slot_name_suffix: str) -> IngestPosition:
        conn = connection.execution_options(isolation_level="AUTOCOMMIT")
        slot_name = get_unique_slot_name(conn.engine.url.database or "", slot_name_suffix)
        existing = conn.execute(
            text("SELECT slot_name FROM pg_replication_slots WHERE slot_name = :slot_name AND plugin = :plugin"),
            {"slot_name": slot_name, "plugin": self.plugin},
        ).first()
        if existing is None:
            conn.execute(
                text("SELECT * FROM pg_create_logical_replication_slot(:slot_name, :plugin)"),
                {"slot_name": slot_name, "plugin": self.plugin},
            )
            logger.info("Replication slot created", slot_name=slot_name, plugin=self.plugin)
        lsn = conn.execute(text(f"SELECT {self.lsn_function}()")).scalar_one()
        return WalPosition(str(lsn))


class OpenGaussPositionInitializer(PostgreSQLPositionInitializer):
    lsn_function = "pg_current_xlog_location"

    def __init__(self, plugin: str = "mppdb_decoding"):
        super().__init__(plugin)


class MySQLPositionInitializer(PositionInitializer):
    def init(self, connection: Connection, slot_name_suffix: str) -> IngestPosition:
        row = connection.execute(text("SHOW MASTER STATUS")).mappings().first()
        if row is None:
            raise RuntimeError("Binary logging is disabled on the source, SHOW MASTER STATUS returned no rows")
        server_id = connection.execute(text("SELECT @@server_id")).scalar_one()
        return BinlogPosition(file_name=row["File"], position=int(row["Position"]), server_id=int(server_id))


PositionInitializerFactory = Callable[[CDCSettings], PositionInitializer]

_INITIALIZER_REGISTRY: Dict[str, PositionInitializerFactory] = {
    "PostgreSQL": lambda settings: PostgreSQLPositionInitializer(settings.postgresql_slot_plugin),
    "openGauss": lambda settings: OpenGaussPositionInitializer(),
    "MySQL": lambda settings: MySQLPositionInitializer(),
}


def register_position_initializer(database_type: str, factory: PositionInitializerFactory) -> None:
    """Register a position initializer for a database type."""
    _INITIALIZER_REGISTRY[database_type] = factory


def create_position_initializer(database_type: str, settings: CDCSettings) -> PositionInitializer:
    factory = _INITIALIZER_REGISTRY.get(database_type)
    if factory is None:
        raise UnsupportedDatabaseTypeError(database_type)
    return factory(settings)
