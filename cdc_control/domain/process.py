"""
Pipeline process configuration and write/read throttling.

Process configuration is shared by every job of a type and may change at
runtime. Readers always see a complete snapshot: ``ProcessConfigurationHolder``
replaces the whole immutable configuration under a lock instead of
mutating fields in place.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

import structlog

logger = structlog.get_logger(__name__)


class AlgorithmConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    props: Dict[str, Any] = Field(default_factory=dict)


class PipelineReadConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    worker_thread: int = 20
    batch_size: int = 1000
    sharding_size: int = 10_000_000
    rate_limiter: Optional[AlgorithmConfiguration] = None


class PipelineWriteConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    worker_thread: int = 20
    batch_size: int = 1000
    rate_limiter: Optional[AlgorithmConfiguration] = None


class PipelineProcessConfiguration(BaseModel):
    """Process-wide tuning for dump and import tasks."""

    model_config = ConfigDict(frozen=True)

    read: PipelineReadConfiguration = Field(default_factory=PipelineReadConfiguration)
    write: PipelineWriteConfiguration = Field(default_factory=PipelineWriteConfiguration)
    stream_channel: AlgorithmConfiguration = Field(
        default_factory=lambda: AlgorithmConfiguration(type="MEMORY", props={"block-queue-size": 2000})
    )


@dataclass(frozen=True)
class VersionedProcessConfiguration:
    version: int
    config: PipelineProcessConfiguration


class ProcessConfigurationHolder:
    """
    Holds the active process configuration as a versioned snapshot.

    ``on_alter`` is invoked with each new configuration before it becomes
    visible, so persistence failures leave the previous snapshot active.
    """

    def __init__(
        self,
        initial: Optional[PipelineProcessConfiguration] = None,
        on_alter: Optional[Callable[[PipelineProcessConfiguration], None]] = None,
    ):
        self._current = VersionedProcessConfiguration(0, initial or PipelineProcessConfiguration())
        self._on_alter = on_alter
        self._lock = threading.Lock()

    def get(self) -> PipelineProcessConfiguration:
        return self._current.config

    def snapshot(self) -> VersionedProcessConfiguration:
        return self._current

    def alter(self, config: PipelineProcessConfiguration) -> VersionedProcessConfiguration:
        with self._lock:
            if self._on_alter is not None:
                self._on_alter(config)
            self._current = VersionedProcessConfiguration(self._current.version + 1, config)
            logger.info("Process configuration altered", version=self._current.version)
            return self._current


# ─── Rate limiting ────────────────────────────────────────────────────────────


class JobRateLimitAlgorithm(ABC):
    """Pluggable throttle consulted by dumpers and importers."""

    type: str

    def __init__(self, props: Optional[Dict[str, Any]] = None):
        self.props = dict(props or {})

    @abstractmethod
    def intercept(self, operation_type: str) -> None:
        """Block until the operation may proceed."""
        ...


class _Pacer:
    """Spaces calls evenly to at most ``permits_per_second``."""

    def __init__(self, permits_per_second: float):
        if permits_per_second <= 0:
            raise ValueError("permits_per_second must be positive")
        self._interval = 1.0 / permits_per_second
        self._next_free = time.monotonic()
        self._lock = threading.Lock()

    def acquire(self) -> None:
        with self._lock:
            now = time.monotonic()
            wait = self._next_free - now
            self._next_free = max(now, self._next_free) + self._interval
        if wait > 0:
            time.sleep(wait)


class TPSJobRateLimitAlgorithm(JobRateLimitAlgorithm):
    """Limits write statements per second (prop ``tps``)."""

    type = "TPS"

    def __init__(self, props: Optional[Dict[str, Any]] = None):
        super().__init__(props)
        self.tps = int(self.props.get("tps", 2000))
        self._pacer = _Pacer(self.tps)

    def intercept(self, operation_type: str) -> None:
        if operation_type.upper() == "SELECT":
            return
        self._pacer.acquire()


class QPSJobRateLimitAlgorithm(JobRateLimitAlgorithm):
    """Limits read queries per second (prop ``qps``)."""

    type = "QPS"

    def __init__(self, props: Optional[Dict[str, Any]] = None):
        super().__init__(props)
        self.qps = int(self.props.get("qps", 30))
        self._pacer = _Pacer(self.qps)

    def intercept(self, operation_type: str) -> None:
        if operation_type.upper() != "SELECT":
            return
        self._pacer.acquire()


_RATE_LIMIT_ALGORITHMS: Dict[str, type] = {
    TPSJobRateLimitAlgorithm.type: TPSJobRateLimitAlgorithm,
    QPSJobRateLimitAlgorithm.type: QPSJobRateLimitAlgorithm,
}


def create_rate_limit_algorithm(
    config: Optional[AlgorithmConfiguration],
) -> Optional[JobRateLimitAlgorithm]:
    """Instantiate the configured algorithm, or None when rate limiting is off."""
    if config is None:
        return None
    algorithm_class = _RATE_LIMIT_ALGORITHMS.get(config.type.upper())
    if algorithm_class is None:
        raise ValueError(f"Unsupported rate limit algorithm `{config.type}`")
    return algorithm_class(config.props)


class CDCProcessContext:
    """Per-job view of the process configuration."""

    def __init__(self, job_id: str, process_config: PipelineProcessConfiguration):
        self.job_id = job_id
        self.process_config = process_config
        self.read_rate_limit_algorithm = create_rate_limit_algorithm(process_config.read.rate_limiter)
        self.write_rate_limit_algorithm = create_rate_limit_algorithm(process_config.write.rate_limiter)

    def __repr__(self) -> str:
        return f"CDCProcessContext(job_id={self.job_id!r})"
