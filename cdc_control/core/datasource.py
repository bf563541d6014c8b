"""
Pooled connections to physical source data sources.

One SQLAlchemy engine per data source name. Connections are only handed
out through ``connection()``, which returns them to the pool on every
exit path.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import QueuePool

import structlog

from cdc_control.config.settings import CDCSettings
from cdc_control.core.security import decrypt_value
from cdc_control.domain.datasource_config import StandardPipelineDataSourceConfiguration

logger = structlog.get_logger(__name__)

_CONNECT_TIMEOUT_BACKENDS = ("postgresql", "mysql", "mariadb")


class PipelineDataSourceManager:
    """
    Manages pooled engines for the data sources a job reads from.

    Not a singleton: each bootstrap or task run owns a manager and closes it.
    """

    def __init__(self, settings: CDCSettings):
        self._settings = settings
        self._engines: Dict[str, Engine] = {}
        self._lock = threading.Lock()

    def get_engine(self, data_source_name: str, config: StandardPipelineDataSourceConfiguration) -> Engine:
        """Get or create the pooled engine of a data source."""
        with self._lock:
            engine = self._engines.get(data_source_name)
            if engine is not None:
                return engine

            url = config.sqlalchemy_url(self._resolve_password(config))
            connect_args = {}
            if url.get_backend_name() in _CONNECT_TIMEOUT_BACKENDS:
                connect_args["connect_timeout"] = self._settings.datasource_connect_timeout

            logger.info(
                "Initializing source data source pool",
                data_source_name=data_source_name,
                backend=url.get_backend_name(),
                pool_size=self._settings.datasource_pool_size,
            )
            engine = create_engine(
                url,
                poolclass=QueuePool,
                pool_size=self._settings.datasource_pool_size,
                max_overflow=self._settings.datasource_max_overflow,
                pool_timeout=self._settings.datasource_pool_timeout,
                pool_recycle=self._settings.datasource_pool_recycle,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
            self._engines[data_source_name] = engine
            return engine

    @contextmanager
    def connection(
        self, data_source_name: str, config: StandardPipelineDataSourceConfiguration
    ) -> Generator[Connection, None, None]:
        """Check out a connection; it is always returned to the pool."""
        conn = self.get_engine(data_source_name, config).connect()
        try:
            yield conn
        finally:
            conn.close()

    def _resolve_password(self, config: StandardPipelineDataSourceConfiguration) -> Optional[str]:
        password = config.properties.password
        if password and self._settings.credential_encryption_key:
            return decrypt_value(password, self._settings.credential_encryption_key)
        return password

    def close(self) -> None:
        """Dispose every engine and its connections."""
        with self._lock:
            for name, engine in self._engines.items():
                engine.dispose()
                logger.debug("Source data source pool disposed", data_source_name=name)
            self._engines.clear()

    def __enter__(self) -> "PipelineDataSourceManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
