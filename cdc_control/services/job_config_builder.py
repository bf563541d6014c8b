"""
Builds a CDC job configuration from a stream request and the live catalog.
"""

from typing import Collection, Optional, Sequence

import structlog

from cdc_control.core.exceptions import (
    PipelineJobCreationWithInvalidShardingCountError,
    PipelineJobInvalidDataNodesError,
)
from cdc_control.domain.datanode import JobDataNodeLine
from cdc_control.domain.datasource_config import ShardingSpherePipelineDataSourceConfiguration
from cdc_control.domain.job import CDCJobConfiguration, StreamDataParameter, parse_schema_table_names
from cdc_control.metadata.catalog import MetaDataCatalog, ShardingSphereDatabase
from cdc_control.services.job_id import generate_cdc_job_id
from cdc_control.services.sharding import build_tables_first_data_nodes, convert_data_nodes_to_lines

logger = structlog.get_logger(__name__)


def build_source_data_source_configuration(
    database: ShardingSphereDatabase,
) -> ShardingSpherePipelineDataSourceConfiguration:
    """Snapshot of a database's data sources and rules, detached from the catalog."""
    return ShardingSpherePipelineDataSourceConfiguration(
        database_name=database.name,
        data_sources=dict(database.data_sources),
        rules=list(database.rule_configurations),
    )


def check_job_data_nodes(
    job_id: str, lines: Sequence[JobDataNodeLine], known_data_sources: Collection[str]
) -> None:
    """Every shard must read exactly one data source known to the catalog."""
    for sharding_item, line in enumerate(lines):
        data_source_names = line.data_source_names
        if len(data_source_names) != 1:
            raise PipelineJobInvalidDataNodesError(
                job_id, sharding_item, data_source_names, "must read exactly one data source"
            )
        if data_source_names[0] not in known_data_sources:
            raise PipelineJobInvalidDataNodesError(
                job_id, sharding_item, data_source_names, "reads an unknown data source"
            )


def find_uncovered_tables(param: StreamDataParameter) -> list:
    """Subscribed names whose logic table has no entry in the data node map."""
    mapped = {each.lower() for each in param.data_nodes_map}
    return [
        name
        for name, table in zip(param.schema_table_names, parse_schema_table_names(param.schema_table_names))
        if table.lower() not in mapped
    ]


class CDCJobConfigurationBuilder:
    """
    Turns a ``StreamDataParameter`` into a ``CDCJobConfiguration``.

    Deterministic for a given request and catalog snapshot. Duplicate
    detection against the coordination store is the registrar's concern.
    """

    def __init__(self, catalog: MetaDataCatalog):
        self._catalog = catalog

    def build(
        self,
        param: StreamDataParameter,
        job_id: Optional[str] = None,
        source_database_type: Optional[str] = None,
    ) -> CDCJobConfiguration:
        database = self._catalog.get_database(param.database)
        data_source_config = build_source_data_source_configuration(database)
        if job_id is None:
            job_id = generate_cdc_job_id(param.database, param.schema_table_names, param.full)
        if not source_database_type:
            source_database_type = data_source_config.database_type

        job_sharding_data_nodes = convert_data_nodes_to_lines(param.data_nodes_map)
        if not job_sharding_data_nodes:
            logger.warning("CDC job resolved to zero shards", job_id=job_id, database=param.database)
            raise PipelineJobCreationWithInvalidShardingCountError(job_id)
        check_job_data_nodes(job_id, job_sharding_data_nodes, data_source_config.data_sources)
        uncovered = find_uncovered_tables(param)
        if uncovered:
            logger.warning("Subscribed tables have no data nodes", job_id=job_id, tables=uncovered)

        result = CDCJobConfiguration(
            job_id=job_id,
            database_name=param.database,
            schema_table_names=param.schema_table_names,
            full=param.full,
            decode_with_tx=param.decode_with_tx,
            source_database_type=source_database_type,
            data_source_config=data_source_config,
            job_sharding_data_nodes=tuple(job_sharding_data_nodes),
            tables_first_data_nodes=build_tables_first_data_nodes(param.data_nodes_map),
        )
        logger.debug(
            "CDC job configuration built",
            job_id=job_id,
            sharding_count=result.job_sharding_count,
            source_database_type=source_database_type,
        )
        return result
