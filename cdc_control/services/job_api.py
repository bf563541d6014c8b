"""
CDC job API: create, bootstrap and lifecycle operations.

Typical flow::

    api = CDCJobAPI(build_pipeline_context())
    job_id = api.create_job(param)      # registered disabled, positions captured
    api.start(job_id)                   # ready -> running
"""

from typing import Any, List, Optional

import structlog

from cdc_control.context import PipelineContext
from cdc_control.core.exceptions import (
    PipelineJobHasAlreadyStartedError,
    PipelineJobNotReadyError,
    UnsupportedPipelineJobOperationError,
)
from cdc_control.domain.job import (
    CDCJobConfiguration,
    JobItemProgress,
    JobLifecycleState,
    StreamDataParameter,
)
from cdc_control.domain.job_type import CDC
from cdc_control.domain.process import CDCProcessContext, PipelineProcessConfiguration
from cdc_control.domain.task_config import CDCTaskConfiguration
from cdc_control.services.job_config_builder import CDCJobConfigurationBuilder
from cdc_control.services.job_kind import CDCJobKind, get_job_kind
from cdc_control.services.position_bootstrap import IncrementalPositionBootstrapper
from cdc_control.services.registrar import GovernanceRegistrar

logger = structlog.get_logger(__name__)


class CDCJobAPI:
    """Control plane entry point for CDC jobs."""

    def __init__(self, context: PipelineContext):
        self._context = context
        self._job_kind = CDCJobKind(context)
        self._builder = CDCJobConfigurationBuilder(context.catalog)
        self._registrar = GovernanceRegistrar(context.governance)
        self._bootstrapper = IncrementalPositionBootstrapper(
            context.governance,
            context.settings,
            data_source_manager_factory=context.data_source_manager_factory,
            position_initializer_factory=context.position_initializer_factory,
        )

    @property
    def job_type(self) -> str:
        return CDC.name

    def create_job(self, param: StreamDataParameter) -> str:
        """
        Create a CDC job and return its id.

        Idempotent on the job id: resubmitting an equivalent request
        returns the existing id without rewriting the job. If an earlier
        bootstrap was interrupted, the missing shard positions are captured.
        """
        job_config = self._builder.build(param)
        result = self._registrar.register(self._job_kind.build_record(job_config))
        if not result.created:
            if not param.full and self._missing_sharding_items(result.job_id):
                self.init_incremental_position(result.job_id)
            return result.job_id
        if not param.full:
            self._bootstrapper.bootstrap(job_config)
        return job_config.job_id

    def init_incremental_position(self, job_id: str) -> List[int]:
        """Capture positions of shards without progress; returns the items written."""
        job_config = self.get_job_configuration(job_id)
        if job_config.full:
            return []
        return self._bootstrapper.bootstrap(job_config)

    def get_job_configuration(self, job_id: str) -> CDCJobConfiguration:
        record = self._registrar.get_record(job_id)
        return get_job_kind(record.job_type, self._context).swap_to_job_configuration(record)

    def get_job_item_progress(self, job_id: str, sharding_item: int) -> Optional[JobItemProgress]:
        value = self._context.governance.get_job_item_progress(job_id, sharding_item)
        if value is None:
            return None
        return JobItemProgress.model_validate_json(value)

    def build_task_configuration(
        self,
        job_config: CDCJobConfiguration,
        sharding_item: int,
        process_config: Optional[PipelineProcessConfiguration] = None,
    ) -> CDCTaskConfiguration:
        process_config = process_config or self._context.process_configuration.get()
        return self._job_kind.build_task_configuration(job_config, sharding_item, process_config)

    def build_task_configuration_for_item(self, job_id: str, sharding_item: int) -> Any:
        """Task configuration of a persisted job, dispatched by its job type tag."""
        record = self._registrar.get_record(job_id)
        job_kind = get_job_kind(record.job_type, self._context)
        return job_kind.build_task_configuration(
            job_kind.swap_to_job_configuration(record),
            sharding_item,
            self._context.process_configuration.get(),
        )

    def build_process_context(self, job_config: CDCJobConfiguration) -> CDCProcessContext:
        return self._job_kind.build_process_context(job_config)

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    def start(self, job_id: str) -> None:
        record = self._registrar.get_record(job_id)
        if not record.disabled:
            raise PipelineJobHasAlreadyStartedError(job_id)
        missing = self._missing_sharding_items(job_id)
        if missing:
            raise PipelineJobNotReadyError(job_id, missing)
        self._registrar.set_disabled(job_id, False)
        logger.info("CDC job started", job_id=job_id)

    def stop(self, job_id: str) -> None:
        self._registrar.set_disabled(job_id, True)
        logger.info("CDC job stopped", job_id=job_id)

    def drop_job(self, job_id: str) -> None:
        self._registrar.unregister(job_id)
        logger.info("CDC job dropped", job_id=job_id)

    def rollback(self, job_id: str) -> None:
        self.stop(job_id)
        self.drop_job(job_id)

    def get_job_state(self, job_id: str) -> JobLifecycleState:
        record = self._registrar.get_record(job_id)
        sharding_items = self._context.governance.get_sharding_items(job_id)
        progresses = [self.get_job_item_progress(job_id, each) for each in sharding_items]
        if any(each is not None and each.status.is_failure for each in progresses):
            return JobLifecycleState.FAILED
        if not record.disabled:
            return JobLifecycleState.RUNNING
        if record.stop_time is not None:
            return JobLifecycleState.STOPPED
        full = bool(record.job_parameter.get("full", False))
        if full or set(range(record.sharding_total_count)) <= set(sharding_items):
            return JobLifecycleState.READY
        return JobLifecycleState.CREATED

    def _missing_sharding_items(self, job_id: str) -> List[int]:
        job_config = self.get_job_configuration(job_id)
        if job_config.full:
            return []
        present = set(self._context.governance.get_sharding_items(job_id))
        return [each for each in range(job_config.job_sharding_count) if each not in present]

    # ─── Unsupported in CDC ───────────────────────────────────────────────────

    def commit(self, job_id: str) -> None:
        raise UnsupportedPipelineJobOperationError("commit", self.job_type)

    def get_job_info(self, job_id: str) -> Any:
        raise UnsupportedPipelineJobOperationError("get_job_info", self.job_type)

    def build_data_consistency_checker(self, job_config: CDCJobConfiguration, *args: Any) -> Any:
        raise UnsupportedPipelineJobOperationError("build_data_consistency_checker", self.job_type)

    def get_target_database_type(self, job_config: CDCJobConfiguration) -> str:
        raise UnsupportedPipelineJobOperationError("get_target_database_type", self.job_type)
