"""
Incremental position bootstrap.

For every shard without progress, capture the source's current log
position and persist it as the shard's initial progress. Shards that
already have progress are skipped, so a failed run can be repeated and
only the missing shards are retried.
"""

from typing import Callable, List, Optional

import structlog

from cdc_control.config.settings import CDCSettings
from cdc_control.core.datasource import PipelineDataSourceManager
from cdc_control.core.exceptions import PipelineJobError, PrepareJobWithGetBinlogPositionError
from cdc_control.core.governance import GovernanceRepository
from cdc_control.domain.job import CDCJobConfiguration, JobItemProgress, JobStatus
from cdc_control.domain.position import IngestPosition
from cdc_control.domain.task_config import DumperConfiguration, TableNameSchemaNameMapping
from cdc_control.services.position_initializer import PositionInitializer, create_position_initializer
from cdc_control.services.sharding import build_table_name_schema_name_mapping
from cdc_control.services.task_assembler import build_dumper_configuration

logger = structlog.get_logger(__name__)


class IncrementalPositionBootstrapper:
    """Creates the initial progress record of each shard of a CDC job."""

    def __init__(
        self,
        repository: GovernanceRepository,
        settings: CDCSettings,
        data_source_manager_factory: Callable[[CDCSettings], PipelineDataSourceManager] = PipelineDataSourceManager,
        position_initializer_factory: Callable[[str, CDCSettings], PositionInitializer] = create_position_initializer,
    ):
        self._repository = repository
        self._settings = settings
        self._data_source_manager_factory = data_source_manager_factory
        self._position_initializer_factory = position_initializer_factory

    def bootstrap(self, job_config: CDCJobConfiguration) -> List[int]:
        """
        Persist progress for every shard that has none.

        Returns the sharding items written by this call. Any failure while
        preparing a shard aborts the remaining shards and raises
        ``PrepareJobWithGetBinlogPositionError`` carrying the job id;
        progress persisted for earlier shards is kept.
        """
        job_id = job_config.job_id
        table_name_schema_name_mapping = build_table_name_schema_name_mapping(job_config.schema_table_names)
        written: List[int] = []
        data_source_manager = self._data_source_manager_factory(self._settings)
        try:
            for sharding_item in range(job_config.job_sharding_count):
                try:
                    progress = self._bootstrap_item(
                        job_config, sharding_item, table_name_schema_name_mapping, data_source_manager
                    )
                except PipelineJobError:
                    raise
                except Exception as e:
                    logger.error(
                        "Get incremental position failed",
                        job_id=job_id,
                        sharding_item=sharding_item,
                        error_type=type(e).__name__,
                        error=str(e),
                    )
                    raise PrepareJobWithGetBinlogPositionError(job_id, e) from e
                if progress is None:
                    logger.debug("Shard progress exists, skip", job_id=job_id, sharding_item=sharding_item)
                    continue
                written.append(sharding_item)
                logger.info(
                    "Incremental position initialized",
                    job_id=job_id,
                    sharding_item=sharding_item,
                    data_source_name=progress.data_source_name,
                    position=progress.incremental_position,
                )
        finally:
            data_source_manager.close()
        return written

    def _bootstrap_item(
        self,
        job_config: CDCJobConfiguration,
        sharding_item: int,
        table_name_schema_name_mapping: TableNameSchemaNameMapping,
        data_source_manager: PipelineDataSourceManager,
    ) -> Optional[JobItemProgress]:
        if self._repository.get_job_item_progress(job_config.job_id, sharding_item) is not None:
            return None
        dumper_config = build_dumper_configuration(job_config, sharding_item, table_name_schema_name_mapping)
        position = self._capture_position(dumper_config, data_source_manager)
        progress = JobItemProgress(
            status=JobStatus.PREPARE_SUCCESS,
            source_database_type=job_config.source_database_type,
            data_source_name=dumper_config.data_source_name,
            incremental_position=position.to_text(),
        )
        self._repository.persist_job_item_progress(job_config.job_id, sharding_item, progress.model_dump_json())
        return progress

    def _capture_position(
        self, dumper_config: DumperConfiguration, data_source_manager: PipelineDataSourceManager
    ) -> IngestPosition:
        initializer = self._position_initializer_factory(
            dumper_config.data_source_config.database_type, self._settings
        )
        with data_source_manager.connection(
            dumper_config.data_source_name, dumper_config.data_source_config
        ) as connection:
            return initializer.init(connection, dumper_config.job_id)
