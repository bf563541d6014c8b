"""
Per-shard task configuration consumed by shard workers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Set

from cdc_control.domain.datasource_config import (
    PipelineDataSourceConfiguration,
    StandardPipelineDataSourceConfiguration,
)
from cdc_control.domain.process import JobRateLimitAlgorithm


class TableNameSchemaNameMapping:
    """Logic table name to schema name; lookups ignore case."""

    def __init__(self, table_schema_map: Optional[Mapping[str, str]] = None):
        self._mapping: Dict[str, str] = {
            table.lower(): schema for table, schema in (table_schema_map or {}).items()
        }

    def get_schema_name(self, logic_table_name: str) -> Optional[str]:
        return self._mapping.get(logic_table_name.lower())

    def as_dict(self) -> Dict[str, str]:
        return dict(self._mapping)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, TableNameSchemaNameMapping) and other._mapping == self._mapping

    def __len__(self) -> int:
        return len(self._mapping)

    def __repr__(self) -> str:
        return f"TableNameSchemaNameMapping({self._mapping!r})"


@dataclass(frozen=True)
class DumperConfiguration:
    """Source-side reader configuration of one shard."""

    job_id: str
    data_source_name: str
    data_source_config: StandardPipelineDataSourceConfiguration
    table_name_map: Dict[str, str]
    table_name_schema_name_mapping: TableNameSchemaNameMapping
    decode_with_tx: bool = False

    def get_logic_table_name(self, actual_table_name: str) -> Optional[str]:
        return self.table_name_map.get(actual_table_name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "data_source_name": self.data_source_name,
            "data_source_config": {
                "type": self.data_source_config.type,
                "parameter": self.data_source_config.parameter,
            },
            "table_name_map": dict(self.table_name_map),
            "table_name_schema_name_mapping": self.table_name_schema_name_mapping.as_dict(),
            "decode_with_tx": self.decode_with_tx,
        }


@dataclass(frozen=True)
class ImporterConfiguration:
    """Sink-side writer configuration of one shard."""

    data_source_config: PipelineDataSourceConfiguration
    sharding_columns_map: Dict[str, Set[str]]
    table_name_schema_name_mapping: TableNameSchemaNameMapping
    batch_size: int
    rate_limit_algorithm: Optional[JobRateLimitAlgorithm] = None
    retry_times: int = 3
    sharding_item: int = 0
    sharding_count: int = 1

    def get_sharding_columns(self, logic_table_name: str) -> Set[str]:
        return set(self.sharding_columns_map.get(logic_table_name, set()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_source_config": {
                "type": self.data_source_config.type,
                "parameter": self.data_source_config.parameter,
            },
            "sharding_columns_map": {
                table: sorted(columns) for table, columns in self.sharding_columns_map.items()
            },
            "table_name_schema_name_mapping": self.table_name_schema_name_mapping.as_dict(),
            "batch_size": self.batch_size,
            "rate_limit_algorithm": self.rate_limit_algorithm.type if self.rate_limit_algorithm else None,
            "retry_times": self.retry_times,
            "sharding_item": self.sharding_item,
            "sharding_count": self.sharding_count,
        }


@dataclass(frozen=True)
class CDCTaskConfiguration:
    dumper_config: DumperConfiguration
    importer_config: ImporterConfiguration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dumper": self.dumper_config.to_dict(),
            "importer": self.importer_config.to_dict(),
        }
