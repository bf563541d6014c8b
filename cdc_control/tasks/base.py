"""
Base task for CDC job tasks.
"""

from celery import Task

import structlog

from cdc_control.core.logging import clear_job_context

logger = structlog.get_logger(__name__)


class BaseTask(Task):
    """
    Logs task outcomes with the job id and drops the bound job context
    once the task returns, so pooled worker threads never leak it.
    """

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(
            "CDC task failed",
            task_id=task_id,
            task_name=self.name,
            job_id=args[0] if args else kwargs.get("job_id"),
            error_type=type(exc).__name__,
            error=str(exc),
            traceback=str(einfo),
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(
            "CDC task retrying",
            task_id=task_id,
            task_name=self.name,
            job_id=args[0] if args else kwargs.get("job_id"),
            retries=self.request.retries,
            max_retries=self.max_retries,
            error=str(exc),
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)

    def on_success(self, retval, task_id, args, kwargs):
        logger.info("CDC task completed", task_id=task_id, task_name=self.name)
        super().on_success(retval, task_id, args, kwargs)

    def after_return(self, status, retval, task_id, args, kwargs, einfo):
        clear_job_context()
        super().after_return(status, retval, task_id, args, kwargs, einfo)
