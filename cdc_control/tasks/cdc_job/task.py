"""
CDC job Celery tasks.

Task names:
    "cdc.job.prepare_incremental_position"  capture missing shard positions
    "cdc.job.build_task_configuration"      dumper/importer config of one shard
"""

from functools import lru_cache
from typing import Any

import structlog

from cdc_control.celery_app import celery_app, settings
from cdc_control.context import build_pipeline_context
from cdc_control.core.exceptions import PrepareJobWithGetBinlogPositionError
from cdc_control.core.logging import bind_job_context
from cdc_control.services.job_api import CDCJobAPI
from cdc_control.tasks.base import BaseTask

logger = structlog.get_logger(__name__)


@lru_cache()
def get_job_api() -> CDCJobAPI:
    """Job API bound to the worker's pipeline context."""
    return CDCJobAPI(build_pipeline_context(settings))


@celery_app.task(
    base=BaseTask,
    name="cdc.job.prepare_incremental_position",
    bind=True,
    max_retries=settings.prepare_max_retries,
    default_retry_delay=settings.prepare_retry_delay,
    queue="cdc_prepare",
    acks_late=True,
)
def prepare_incremental_position_task(self, job_id: str) -> dict[str, Any]:
    """
    Capture incremental positions for every shard of a job that has none.

    Shards that already have progress are left untouched, so retries only
    repeat the failed shards.

    Returns:
        Dict with job_id and the sharding items written by this run.
    """
    bind_job_context(job_id)
    logger.info("Prepare incremental position task started", task_id=self.request.id)
    try:
        written = get_job_api().init_incremental_position(job_id)
    except PrepareJobWithGetBinlogPositionError as exc:
        logger.warning(
            "Prepare incremental position failed, will retry",
            task_id=self.request.id,
            error=str(exc),
        )
        raise self.retry(exc=exc)
    return {"job_id": job_id, "sharding_items": written}


@celery_app.task(
    base=BaseTask,
    name="cdc.job.build_task_configuration",
    bind=True,
)
def build_task_configuration_task(self, job_id: str, sharding_item: int) -> dict[str, Any]:
    """Build the task configuration of one shard of a persisted job."""
    bind_job_context(job_id, sharding_item)
    task_config = get_job_api().build_task_configuration_for_item(job_id, sharding_item)
    return task_config.to_dict()
