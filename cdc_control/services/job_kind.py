"""
Job kinds: the capability set each pipeline job type implements.

Persisted job records carry a ``job_type`` tag; callers dispatch on that
tag through ``get_job_kind`` rather than inspecting runtime types.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Protocol

from cdc_control.core.exceptions import UnsupportedPipelineJobTypeError
from cdc_control.domain.job import (
    CDCJobConfiguration,
    CDCJobParameter,
    JobConfigurationRecord,
    StreamDataParameter,
    swap_to_job_configuration,
    swap_to_job_parameter,
)
from cdc_control.domain.job_type import CDC, JobType
from cdc_control.domain.process import CDCProcessContext, PipelineProcessConfiguration
from cdc_control.domain.task_config import CDCTaskConfiguration
from cdc_control.services import task_assembler
from cdc_control.services.job_id import generate_cdc_job_id

if TYPE_CHECKING:
    from cdc_control.context import PipelineContext


class JobKind(Protocol):
    job_type: JobType

    @property
    def job_class_name(self) -> str:
        ...

    def marshal_job_id(self, param: Any) -> str:
        ...

    def build_task_configuration(
        self, job_config: Any, sharding_item: int, process_config: PipelineProcessConfiguration
    ) -> Any:
        ...

    def build_process_context(self, job_config: Any) -> Any:
        ...

    def swap_to_job_configuration(self, record: JobConfigurationRecord) -> Any:
        ...

    def build_record(self, job_config: Any) -> JobConfigurationRecord:
        ...


class CDCJobKind:
    """Change-data-capture jobs."""

    job_type = CDC

    def __init__(self, context: "PipelineContext"):
        self._context = context

    @property
    def job_class_name(self) -> str:
        return f"{type(self).__module__}.{type(self).__qualname__}"

    def marshal_job_id(self, param: StreamDataParameter) -> str:
        return generate_cdc_job_id(param.database, param.schema_table_names, param.full)

    def build_task_configuration(
        self, job_config: CDCJobConfiguration, sharding_item: int, process_config: PipelineProcessConfiguration
    ) -> CDCTaskConfiguration:
        return task_assembler.build_task_configuration(job_config, sharding_item, process_config)

    def build_process_context(self, job_config: CDCJobConfiguration) -> CDCProcessContext:
        return CDCProcessContext(job_config.job_id, self._context.process_configuration.get())

    def swap_to_job_configuration(self, record: JobConfigurationRecord) -> CDCJobConfiguration:
        return swap_to_job_configuration(CDCJobParameter.model_validate(record.job_parameter))

    def build_record(self, job_config: CDCJobConfiguration) -> JobConfigurationRecord:
        """Scheduler record of a new job; always created disabled."""
        return JobConfigurationRecord(
            job_name=job_config.job_id,
            job_type=self.job_type.name,
            job_class_name=self.job_class_name,
            sharding_total_count=job_config.job_sharding_count,
            job_parameter=swap_to_job_parameter(job_config).model_dump(),
            disabled=True,
        )


_JOB_KINDS: Dict[str, Callable[["PipelineContext"], JobKind]] = {
    CDC.name: CDCJobKind,
}


def register_job_kind(job_type_name: str, factory: Callable[["PipelineContext"], JobKind]) -> None:
    """Register the implementation of a job type (e.g. migration, consistency check)."""
    _JOB_KINDS[job_type_name] = factory


def get_job_kind(job_type_name: str, context: "PipelineContext") -> JobKind:
    factory = _JOB_KINDS.get(job_type_name)
    if factory is None:
        raise UnsupportedPipelineJobTypeError(job_type_name)
    return factory(context)
