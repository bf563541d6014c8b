"""
CDC job request, configuration and persisted records.

In-memory views are frozen dataclasses; everything written to the
coordination store is a pydantic model serialized to JSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from cdc_control.domain.datanode import DataNode, JobDataNodeLine
from cdc_control.domain.datasource_config import (
    PipelineDataSourceConfiguration,
    create_pipeline_data_source_configuration,
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ─── Request ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StreamDataParameter:
    """
    A caller's "stream these tables" request.

    ``data_nodes_map`` maps each logic table to its ordered physical
    locations; iteration order of the mapping is preserved.
    """

    database: str
    schema_table_names: Tuple[str, ...]
    full: bool
    decode_with_tx: bool
    data_nodes_map: Mapping[str, Tuple[DataNode, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "schema_table_names", tuple(self.schema_table_names))
        object.__setattr__(
            self,
            "data_nodes_map",
            {table: tuple(nodes) for table, nodes in dict(self.data_nodes_map).items()},
        )
        for table, nodes in self.data_nodes_map.items():
            if not nodes:
                raise ValueError(f"Logic table `{table}` has no data nodes")


# ─── Job configuration ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CDCJobConfiguration:
    """Durable configuration of a CDC job (in-memory, read-only view)."""

    job_id: str
    database_name: str
    schema_table_names: Tuple[str, ...]
    full: bool
    decode_with_tx: bool
    source_database_type: str
    data_source_config: PipelineDataSourceConfiguration
    job_sharding_data_nodes: Tuple[JobDataNodeLine, ...]
    tables_first_data_nodes: JobDataNodeLine

    @property
    def job_sharding_count(self) -> int:
        return len(self.job_sharding_data_nodes)


class DataSourceConfigurationParameter(BaseModel):
    type: str
    parameter: Dict[str, Any]


class CDCJobParameter(BaseModel):
    """Persisted form of ``CDCJobConfiguration``."""

    job_id: Optional[str] = None
    database: str
    schema_table_names: List[str]
    full: bool = False
    decode_with_tx: bool = False
    source_database_type: Optional[str] = None
    data_source_configuration: DataSourceConfigurationParameter
    job_sharding_data_nodes: List[str] = Field(default_factory=list)
    tables_first_data_nodes: str = ""


def swap_to_job_configuration(parameter: CDCJobParameter) -> CDCJobConfiguration:
    if not parameter.job_id:
        raise ValueError("Job parameter has no job id")
    return CDCJobConfiguration(
        job_id=parameter.job_id,
        database_name=parameter.database,
        schema_table_names=tuple(parameter.schema_table_names),
        full=parameter.full,
        decode_with_tx=parameter.decode_with_tx,
        source_database_type=parameter.source_database_type or "",
        data_source_config=create_pipeline_data_source_configuration(
            parameter.data_source_configuration.type,
            parameter.data_source_configuration.parameter,
        ),
        job_sharding_data_nodes=tuple(JobDataNodeLine.unmarshal(each) for each in parameter.job_sharding_data_nodes),
        tables_first_data_nodes=JobDataNodeLine.unmarshal(parameter.tables_first_data_nodes),
    )


def swap_to_job_parameter(config: CDCJobConfiguration) -> CDCJobParameter:
    return CDCJobParameter(
        job_id=config.job_id,
        database=config.database_name,
        schema_table_names=list(config.schema_table_names),
        full=config.full,
        decode_with_tx=config.decode_with_tx,
        source_database_type=config.source_database_type,
        data_source_configuration=DataSourceConfigurationParameter(
            type=config.data_source_config.type,
            parameter=config.data_source_config.parameter,
        ),
        job_sharding_data_nodes=[each.marshal() for each in config.job_sharding_data_nodes],
        tables_first_data_nodes=config.tables_first_data_nodes.marshal(),
    )


class JobConfigurationRecord(BaseModel):
    """
    Scheduler-facing job record stored at the job configuration path.

    ``job_type`` is the tag used to dispatch to a job kind implementation.
    """

    job_name: str
    job_type: str
    job_class_name: str
    sharding_total_count: int
    job_parameter: Dict[str, Any]
    disabled: bool = True
    create_time: str = Field(default_factory=utc_now_iso)
    stop_time: Optional[str] = None
    props: Dict[str, str] = Field(default_factory=dict)


# ─── Progress ─────────────────────────────────────────────────────────────────


class JobStatus(str, Enum):
    PREPARING = "PREPARING"
    PREPARE_SUCCESS = "PREPARE_SUCCESS"
    EXECUTE_INVENTORY_TASK = "EXECUTE_INVENTORY_TASK"
    EXECUTE_INCREMENTAL_TASK = "EXECUTE_INCREMENTAL_TASK"
    FINISHED = "FINISHED"
    PREPARING_FAILURE = "PREPARING_FAILURE"
    EXECUTE_INVENTORY_TASK_FAILURE = "EXECUTE_INVENTORY_TASK_FAILURE"
    EXECUTE_INCREMENTAL_TASK_FAILURE = "EXECUTE_INCREMENTAL_TASK_FAILURE"

    @property
    def is_failure(self) -> bool:
        return self.value.endswith("_FAILURE")


class JobItemProgress(BaseModel):
    """Progress of one shard; created by the bootstrapper, then owned by the executor."""

    status: JobStatus
    source_database_type: Optional[str] = None
    data_source_name: str
    incremental_position: Optional[str] = None
    create_time: str = Field(default_factory=utc_now_iso)


class JobLifecycleState(str, Enum):
    CREATED = "CREATED"
    READY = "READY"
    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    FAILED = "FAILED"


def parse_schema_table_names(names: Sequence[str]) -> List[str]:
    """Logic table part of each ``schema.table`` (or bare) name."""
    return [each.split(".", 1)[1] if "." in each else each for each in names]
