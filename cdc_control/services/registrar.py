"""
Governance registrar: the only writer of job configuration records.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from cdc_control.core.exceptions import PipelineJobNotFoundError
from cdc_control.core.governance import GovernanceRepository
from cdc_control.domain.job import JobConfigurationRecord, utc_now_iso
from cdc_control.metadata import node

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    job_id: str
    created: bool


class GovernanceRegistrar:
    """
    Publishes job existence and configuration to the coordination store.

    Registration writes the job root marker first, then the configuration
    record with ``SET NX``. A crash between the two leaves an orphan root,
    which the next registration of the same id completes. Concurrent
    registrations of one id have a single winner; the others report a
    duplicate.
    """

    def __init__(self, repository: GovernanceRepository):
        self._repository = repository

    def register(self, record: JobConfigurationRecord) -> RegistrationResult:
        job_id = record.job_name
        config_path = node.get_job_config_path(job_id)
        if self._repository.is_existed(config_path):
            logger.warning("CDC job already exists in registry center, ignore", job_config_key=config_path)
            return RegistrationResult(job_id, created=False)

        self._repository.persist(node.get_job_root_path(job_id), record.job_class_name)
        if not self._repository.persist_if_absent(config_path, record.model_dump_json()):
            logger.warning("CDC job registered concurrently, ignore", job_config_key=config_path)
            return RegistrationResult(job_id, created=False)

        logger.info(
            "CDC job registered",
            job_id=job_id,
            sharding_total_count=record.sharding_total_count,
            disabled=record.disabled,
        )
        return RegistrationResult(job_id, created=True)

    def find_record(self, job_id: str) -> Optional[JobConfigurationRecord]:
        value = self._repository.get(node.get_job_config_path(job_id))
        if value is None:
            return None
        return JobConfigurationRecord.model_validate_json(value)

    def get_record(self, job_id: str) -> JobConfigurationRecord:
        record = self.find_record(job_id)
        if record is None:
            raise PipelineJobNotFoundError(job_id)
        return record

    def set_disabled(self, job_id: str, disabled: bool) -> JobConfigurationRecord:
        """Flip the disabled flag; disabling stamps the stop time."""
        record = self.get_record(job_id)
        updated = record.model_copy(
            update={"disabled": disabled, "stop_time": utc_now_iso() if disabled else None}
        )
        self._repository.persist(node.get_job_config_path(job_id), updated.model_dump_json())
        logger.info("CDC job disabled flag updated", job_id=job_id, disabled=disabled)
        return updated

    def unregister(self, job_id: str) -> None:
        """Remove the job root, its configuration and all shard progress."""
        if not self._repository.is_existed(node.get_job_root_path(job_id)) and not self._repository.is_existed(
            node.get_job_config_path(job_id)
        ):
            raise PipelineJobNotFoundError(job_id)
        self._repository.delete_tree(node.get_job_root_path(job_id))
        logger.info("CDC job unregistered", job_id=job_id)
