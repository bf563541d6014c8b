"""
Coordination store access backed by Redis.

Paths from ``cdc_control.metadata.node`` are stored as plain string keys
under a namespace prefix. ``persist_if_absent`` uses ``SET NX`` so that
concurrent registrations of the same job id have exactly one winner.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, List, Optional

import redis as redis_lib

import structlog

from cdc_control.config.settings import CDCSettings
from cdc_control.core.exceptions import GovernanceStoreError
from cdc_control.metadata import node

logger = structlog.get_logger(__name__)


@contextmanager
def _store_errors(operation: str, path: str) -> Generator[None, None, None]:
    try:
        yield
    except redis_lib.RedisError as e:
        logger.error("Coordination store operation failed", operation=operation, path=path, error=str(e))
        raise GovernanceStoreError(
            f"Coordination store `{operation}` failed for `{path}`: {e}",
            {"operation": operation, "path": path},
        ) from e


class GovernanceRepository:
    """Key/value operations on job metadata and progress."""

    def __init__(self, client: redis_lib.Redis, namespace: str = "cdc"):
        self._client = client
        self._namespace = namespace

    def _key(self, path: str) -> str:
        return f"{self._namespace}:{path}"

    def _path(self, key: str) -> str:
        return key[len(self._namespace) + 1:]

    def is_existed(self, path: str) -> bool:
        with _store_errors("exists", path):
            return bool(self._client.exists(self._key(path)))

    def get(self, path: str) -> Optional[str]:
        with _store_errors("get", path):
            value = self._client.get(self._key(path))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def persist(self, path: str, value: str) -> None:
        with _store_errors("persist", path):
            self._client.set(self._key(path), value)

    def persist_if_absent(self, path: str, value: str) -> bool:
        """Write only if nothing is stored at ``path``; True when this call wrote."""
        with _store_errors("persist_if_absent", path):
            return bool(self._client.set(self._key(path), value, nx=True))

    def get_children_paths(self, path: str) -> List[str]:
        with _store_errors("children", path):
            keys = self._client.scan_iter(match=self._key(path) + "/*")
            return sorted(
                self._path(each.decode("utf-8") if isinstance(each, bytes) else each)
                for each in keys
            )

    def delete_tree(self, path: str) -> int:
        """Delete ``path`` and everything below it; returns the number of keys removed."""
        with _store_errors("delete", path):
            keys = [self._key(path)]
            keys.extend(self._client.scan_iter(match=self._key(path) + "/*"))
            deleted = self._client.delete(*keys)
        logger.info("Coordination store tree deleted", path=path, deleted=deleted)
        return deleted

    def persist_job_item_progress(self, job_id: str, sharding_item: int, value: str) -> None:
        self.persist(node.get_job_offset_item_path(job_id, sharding_item), value)

    def get_job_item_progress(self, job_id: str, sharding_item: int) -> Optional[str]:
        return self.get(node.get_job_offset_item_path(job_id, sharding_item))

    def get_sharding_items(self, job_id: str) -> List[int]:
        """Sharding items that have persisted progress."""
        prefix = node.get_job_offset_path(job_id) + "/"
        return sorted(
            int(each[len(prefix):])
            for each in self.get_children_paths(node.get_job_offset_path(job_id))
            if each[len(prefix):].isdigit()
        )


def create_governance_repository(settings: CDCSettings) -> GovernanceRepository:
    """Build a repository over a pooled Redis connection."""
    pool = redis_lib.ConnectionPool.from_url(
        settings.governance_redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.governance_socket_timeout,
        socket_timeout=settings.governance_socket_timeout,
        retry_on_timeout=True,
    )
    logger.info(
        "Coordination store pool created",
        url=settings.governance_redis_url,
        namespace=settings.governance_namespace,
    )
    return GovernanceRepository(redis_lib.Redis(connection_pool=pool), settings.governance_namespace)
