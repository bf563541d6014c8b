"""
Custom exceptions for the CDC control plane.

Job-scoped errors carry the job id in ``details`` for operator diagnosis.
``args`` mirrors each constructor so errors survive pickling across
Celery result and retry boundaries.
"""

from typing import List, Optional


class PipelineError(Exception):
    """Base exception for all pipeline control plane errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, details)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class PipelineJobError(PipelineError):
    """Error bound to a single job."""

    def __init__(self, message: str, job_id: str, details: dict | None = None):
        super().__init__(message, {"job_id": job_id, **(details or {})})
        self.job_id = job_id
        self.args = (message, job_id, details)


class PipelineJobCreationWithInvalidShardingCountError(PipelineJobError):
    """Job resolved to zero shards."""

    def __init__(self, job_id: str):
        super().__init__(f"Job sharding count is 0, job id: `{job_id}`", job_id)
        self.args = (job_id,)


class PipelineJobInvalidDataNodesError(PipelineJobError):
    """A shard does not resolve to exactly one known data source."""

    def __init__(self, job_id: str, sharding_item: int, data_source_names: List[str], reason: str):
        super().__init__(
            f"Sharding item {sharding_item} of job `{job_id}` {reason}, got {data_source_names}",
            job_id,
            {"sharding_item": sharding_item, "data_source_names": data_source_names},
        )
        self.sharding_item = sharding_item
        self.data_source_names = data_source_names
        self.args = (job_id, sharding_item, data_source_names, reason)


class PrepareJobWithGetBinlogPositionError(PipelineJobError):
    """Capturing the incremental start position failed for a job."""

    def __init__(self, job_id: str, cause: BaseException):
        super().__init__(
            f"Get binlog position failed by job `{job_id}`, reason is: {cause}",
            job_id,
            {"cause": str(cause)},
        )
        self.cause = cause
        self.args = (job_id, cause)


class PipelineJobNotFoundError(PipelineJobError):
    """No job configuration record exists."""

    def __init__(self, job_id: str):
        super().__init__(f"Can not find job `{job_id}`", job_id)
        self.args = (job_id,)


class PipelineJobHasAlreadyStartedError(PipelineJobError):
    """Job is enabled already."""

    def __init__(self, job_id: str):
        super().__init__(f"Job `{job_id}` has already started", job_id)
        self.args = (job_id,)


class PipelineJobNotReadyError(PipelineJobError):
    """Job is missing incremental positions for some shards."""

    def __init__(self, job_id: str, missing_items: list[int]):
        super().__init__(
            f"Job `{job_id}` is not ready, sharding items without progress: {missing_items}",
            job_id,
            {"missing_items": missing_items},
        )
        self.missing_items = missing_items
        self.args = (job_id, missing_items)


class UnsupportedPipelineJobOperationError(PipelineError):
    """Operation is not implemented for a job type."""

    def __init__(self, operation: str, job_type: str):
        super().__init__(
            f"Operation `{operation}` is not supported by `{job_type}` jobs",
            {"operation": operation, "job_type": job_type},
        )
        self.operation = operation
        self.args = (operation, job_type)


class UnsupportedPipelineJobTypeError(PipelineError):
    """No job kind is registered for a job type tag."""

    def __init__(self, job_type: str):
        super().__init__(f"Unsupported job type `{job_type}`", {"job_type": job_type})
        self.args = (job_type,)


class PipelineDataSourceConfigurationError(PipelineError):
    """Data source descriptor is invalid or does not match the sharding layout."""
    pass


class UnsupportedDatabaseTypeError(PipelineError):
    """No position initializer exists for the source database type."""

    def __init__(self, database_type: Optional[str]):
        super().__init__(
            f"Unsupported database type `{database_type}`",
            {"database_type": database_type},
        )
        self.args = (database_type,)


class DatabaseNotFoundError(PipelineError):
    """Catalog has no database with the requested name."""

    def __init__(self, database_name: str):
        super().__init__(
            f"Database `{database_name}` does not exist", {"database": database_name}
        )
        self.args = (database_name,)


class GovernanceStoreError(PipelineError):
    """Coordination store is unavailable or rejected an operation."""
    pass
