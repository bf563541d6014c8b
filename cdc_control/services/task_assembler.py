"""
Per-shard task configuration: source-side dumper and sink-side importer.

Pure derivation from a persisted job configuration plus the process
configuration active at assignment time.
"""

from typing import Optional

import structlog

from cdc_control.core.exceptions import PipelineDataSourceConfigurationError
from cdc_control.domain.datasource_config import (
    ShardingSpherePipelineDataSourceConfiguration,
    StandardPipelineDataSourceConfiguration,
)
from cdc_control.domain.job import CDCJobConfiguration, parse_schema_table_names
from cdc_control.domain.process import CDCProcessContext, PipelineProcessConfiguration
from cdc_control.domain.task_config import (
    CDCTaskConfiguration,
    DumperConfiguration,
    ImporterConfiguration,
    TableNameSchemaNameMapping,
)
from cdc_control.services.sharding import build_table_name_map, build_table_name_schema_name_mapping
from cdc_control.services.sharding_columns import get_sharding_columns_map

logger = structlog.get_logger(__name__)

# The CDC sink does not sub-shard a job item.
IMPORTER_SHARDING_ITEM = 0
IMPORTER_SHARDING_COUNT = 1


def _resolve_actual_data_source_configuration(
    job_config: CDCJobConfiguration, data_source_name: str
) -> StandardPipelineDataSourceConfiguration:
    data_source_config = job_config.data_source_config
    if isinstance(data_source_config, ShardingSpherePipelineDataSourceConfiguration):
        return data_source_config.get_actual_data_source_configuration(data_source_name)
    if isinstance(data_source_config, StandardPipelineDataSourceConfiguration):
        return data_source_config
    raise PipelineDataSourceConfigurationError(
        f"Unsupported source descriptor type `{data_source_config.type}` of job `{job_config.job_id}`",
        {"job_id": job_config.job_id, "type": data_source_config.type},
    )


def build_dumper_configuration(
    job_config: CDCJobConfiguration,
    sharding_item: int,
    table_name_schema_name_mapping: TableNameSchemaNameMapping,
) -> DumperConfiguration:
    """Dumper of one shard; every data node of the shard must share one data source."""
    if not 0 <= sharding_item < job_config.job_sharding_count:
        raise IndexError(
            f"Sharding item {sharding_item} out of range for job `{job_config.job_id}` "
            f"with {job_config.job_sharding_count} shards"
        )
    data_node_line = job_config.job_sharding_data_nodes[sharding_item]
    data_source_names = data_node_line.data_source_names
    if len(data_source_names) != 1:
        raise PipelineDataSourceConfigurationError(
            f"Sharding item {sharding_item} of job `{job_config.job_id}` must read exactly one "
            f"data source, got {data_source_names}",
            {"job_id": job_config.job_id, "sharding_item": sharding_item, "data_source_names": data_source_names},
        )
    data_source_name = data_source_names[0]
    return DumperConfiguration(
        job_id=job_config.job_id,
        data_source_name=data_source_name,
        data_source_config=_resolve_actual_data_source_configuration(job_config, data_source_name),
        table_name_map=build_table_name_map(data_node_line),
        table_name_schema_name_mapping=table_name_schema_name_mapping,
        decode_with_tx=job_config.decode_with_tx,
    )


def build_importer_configuration(
    job_config: CDCJobConfiguration,
    process_config: PipelineProcessConfiguration,
    table_name_schema_name_mapping: TableNameSchemaNameMapping,
    process_context: Optional[CDCProcessContext] = None,
) -> ImporterConfiguration:
    process_context = process_context or CDCProcessContext(job_config.job_id, process_config)
    rules = (
        job_config.data_source_config.rules
        if isinstance(job_config.data_source_config, ShardingSpherePipelineDataSourceConfiguration)
        else []
    )
    sharding_columns_map = get_sharding_columns_map(
        rules, parse_schema_table_names(job_config.schema_table_names)
    )
    return ImporterConfiguration(
        data_source_config=job_config.data_source_config,
        sharding_columns_map=sharding_columns_map,
        table_name_schema_name_mapping=table_name_schema_name_mapping,
        batch_size=process_config.write.batch_size,
        rate_limit_algorithm=process_context.write_rate_limit_algorithm,
        sharding_item=IMPORTER_SHARDING_ITEM,
        sharding_count=IMPORTER_SHARDING_COUNT,
    )


def build_task_configuration(
    job_config: CDCJobConfiguration,
    sharding_item: int,
    process_config: PipelineProcessConfiguration,
) -> CDCTaskConfiguration:
    """Paired dumper and importer configuration of one shard."""
    table_name_schema_name_mapping = build_table_name_schema_name_mapping(job_config.schema_table_names)
    dumper_config = build_dumper_configuration(job_config, sharding_item, table_name_schema_name_mapping)
    importer_config = build_importer_configuration(job_config, process_config, table_name_schema_name_mapping)
    result = CDCTaskConfiguration(dumper_config, importer_config)
    logger.debug("Task configuration built", job_id=job_config.job_id, sharding_item=sharding_item, result=result)
    return result
