"""
Metadata catalog: physical data sources and rule configurations per
logical database.

The catalog publishes immutable snapshots. Writers build a new snapshot
and swap the reference under a lock; readers take the current reference
and never observe a partially applied change.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

import structlog

from cdc_control.core.exceptions import DatabaseNotFoundError
from cdc_control.domain.datasource_config import DataSourceProperties
from cdc_control.domain.rule import ShardingRuleConfiguration

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ShardingSphereDatabase:
    """One logical database as known to the proxy."""

    name: str
    data_sources: Mapping[str, DataSourceProperties]
    rule_configurations: Tuple[ShardingRuleConfiguration, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_sources", MappingProxyType(dict(self.data_sources)))
        object.__setattr__(self, "rule_configurations", tuple(self.rule_configurations))


@dataclass(frozen=True)
class MetaDataSnapshot:
    version: int
    databases: Mapping[str, ShardingSphereDatabase] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "databases", MappingProxyType(dict(self.databases)))


class MetaDataCatalog:
    """Versioned, atomically swapped view of database metadata."""

    def __init__(self, databases: Optional[Iterable[ShardingSphereDatabase]] = None):
        self._snapshot = MetaDataSnapshot(0, {each.name: each for each in databases or ()})
        self._lock = threading.Lock()

    def snapshot(self) -> MetaDataSnapshot:
        return self._snapshot

    def get_database(self, name: str) -> ShardingSphereDatabase:
        database = self._snapshot.databases.get(name)
        if database is None:
            raise DatabaseNotFoundError(name)
        return database

    def replace(self, databases: Iterable[ShardingSphereDatabase]) -> MetaDataSnapshot:
        """Publish a completely new set of databases."""
        with self._lock:
            self._snapshot = MetaDataSnapshot(
                self._snapshot.version + 1, {each.name: each for each in databases}
            )
            logger.info("Metadata catalog replaced", version=self._snapshot.version)
            return self._snapshot

    def alter_database(self, database: ShardingSphereDatabase) -> MetaDataSnapshot:
        """Publish a snapshot with one database added or replaced."""
        with self._lock:
            databases: Dict[str, ShardingSphereDatabase] = dict(self._snapshot.databases)
            databases[database.name] = database
            self._snapshot = MetaDataSnapshot(self._snapshot.version + 1, databases)
            logger.info(
                "Metadata catalog database altered",
                database=database.name,
                version=self._snapshot.version,
            )
            return self._snapshot

    def drop_database(self, name: str) -> MetaDataSnapshot:
        with self._lock:
            databases = dict(self._snapshot.databases)
            if databases.pop(name, None) is None:
                raise DatabaseNotFoundError(name)
            self._snapshot = MetaDataSnapshot(self._snapshot.version + 1, databases)
            return self._snapshot
