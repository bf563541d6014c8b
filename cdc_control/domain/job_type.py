"""
Job type tags.

A job id embeds its type code: ``j`` + type code + format version + digest.
"""

from dataclasses import dataclass

JOB_ID_PREFIX = "j"
JOB_ID_FORMAT_VERSION = "01"


@dataclass(frozen=True)
class JobType:
    name: str
    code: str


MIGRATION = JobType("MIGRATION", "01")
CONSISTENCY_CHECK = JobType("CONSISTENCY_CHECK", "02")
CDC = JobType("CDC", "03")


def marshal_job_id(job_type: JobType, left_part: str) -> str:
    return JOB_ID_PREFIX + job_type.code + JOB_ID_FORMAT_VERSION + left_part
