from cdc_control.tasks.cdc_job.task import (
    build_task_configuration_task,
    get_job_api,
    prepare_incremental_position_task,
)

__all__ = [
    "build_task_configuration_task",
    "get_job_api",
    "prepare_incremental_position_task",
]
