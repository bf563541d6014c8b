"""
Coordination store paths.

    /pipeline/jobs/{job_id}                       job root (job class name)
    /pipeline/jobs/{job_id}/config                job configuration record
    /pipeline/jobs/{job_id}/offset/{item}         shard progress
    /pipeline/metadata/{job_type}/process_config  process configuration
"""

JOBS_ROOT = "/pipeline/jobs"
METADATA_ROOT = "/pipeline/metadata"


def get_job_root_path(job_id: str) -> str:
    return f"{JOBS_ROOT}/{job_id}"


def get_job_config_path(job_id: str) -> str:
    return f"{get_job_root_path(job_id)}/config"


def get_job_offset_path(job_id: str) -> str:
    return f"{get_job_root_path(job_id)}/offset"


def get_job_offset_item_path(job_id: str, sharding_item: int) -> str:
    return f"{get_job_offset_path(job_id)}/{sharding_item}"


def get_process_config_path(job_type: str) -> str:
    return f"{METADATA_ROOT}/{job_type.lower()}/process_config"
