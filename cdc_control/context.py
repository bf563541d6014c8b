"""
Pipeline context: the collaborators every control plane component needs.

Components receive a context at construction instead of reaching for
process-wide singletons. ``build_pipeline_context`` is the composition
root used by the worker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from cdc_control.config.settings import CDCSettings, get_settings
from cdc_control.core.datasource import PipelineDataSourceManager
from cdc_control.core.governance import GovernanceRepository, create_governance_repository
from cdc_control.domain.job_type import CDC
from cdc_control.domain.process import (
    AlgorithmConfiguration,
    PipelineProcessConfiguration,
    PipelineReadConfiguration,
    PipelineWriteConfiguration,
    ProcessConfigurationHolder,
)
from cdc_control.metadata import node
from cdc_control.metadata.catalog import MetaDataCatalog
from cdc_control.services.position_initializer import PositionInitializer, create_position_initializer

logger = structlog.get_logger(__name__)


@dataclass
class PipelineContext:
    settings: CDCSettings
    governance: GovernanceRepository
    catalog: MetaDataCatalog
    process_configuration: ProcessConfigurationHolder
    data_source_manager_factory: Callable[[CDCSettings], PipelineDataSourceManager] = field(
        default=PipelineDataSourceManager
    )
    position_initializer_factory: Callable[[str, CDCSettings], PositionInitializer] = field(
        default=create_position_initializer
    )


def default_process_configuration(settings: CDCSettings) -> PipelineProcessConfiguration:
    write_rate_limiter = None
    if settings.write_rate_limiter_type:
        write_rate_limiter = AlgorithmConfiguration(
            type=settings.write_rate_limiter_type, props=settings.write_rate_limiter_props
        )
    return PipelineProcessConfiguration(
        read=PipelineReadConfiguration(
            worker_thread=settings.read_worker_thread,
            batch_size=settings.read_batch_size,
        ),
        write=PipelineWriteConfiguration(
            worker_thread=settings.write_worker_thread,
            batch_size=settings.write_batch_size,
            rate_limiter=write_rate_limiter,
        ),
        stream_channel=AlgorithmConfiguration(
            type=settings.stream_channel_type,
            props={"block-queue-size": settings.stream_channel_block_queue_size},
        ),
    )


def load_process_configuration_holder(
    governance: GovernanceRepository, settings: CDCSettings
) -> ProcessConfigurationHolder:
    """
    Holder seeded from the coordination store when a configuration was
    altered before, otherwise from settings. Alterations are persisted.
    """
    path = node.get_process_config_path(CDC.name)
    persisted = governance.get(path)
    initial = (
        PipelineProcessConfiguration.model_validate_json(persisted)
        if persisted is not None
        else default_process_configuration(settings)
    )
    return ProcessConfigurationHolder(
        initial, on_alter=lambda config: governance.persist(path, config.model_dump_json())
    )


def build_pipeline_context(
    settings: Optional[CDCSettings] = None,
    catalog: Optional[MetaDataCatalog] = None,
    governance: Optional[GovernanceRepository] = None,
) -> PipelineContext:
    settings = settings or get_settings()
    governance = governance or create_governance_repository(settings)
    logger.info("Building pipeline context", namespace=settings.governance_namespace)
    return PipelineContext(
        settings=settings,
        governance=governance,
        catalog=catalog or MetaDataCatalog(),
        process_configuration=load_process_configuration_holder(governance, settings),
    )
