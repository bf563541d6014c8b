"""
Pipeline data source descriptors.

A job references its source either through a single standard descriptor
or through a composite descriptor that spans every physical data source
of a logical database together with its rule configurations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from cdc_control.core.exceptions import PipelineDataSourceConfigurationError
from cdc_control.domain.rule import ShardingRuleConfiguration

STANDARD_TYPE = "STANDARD"
SHARDING_SPHERE_TYPE = "SHARDING_SPHERE"

_BACKEND_DATABASE_TYPES = {
    "postgresql": "PostgreSQL",
    "postgres": "PostgreSQL",
    "opengauss": "openGauss",
    "mysql": "MySQL",
    "mariadb": "MySQL",
    "sqlite": "SQLite",
}

# Drivers declared by the package; a bare backend URL resolves to these.
_DEFAULT_DRIVER_NAMES = {
    "postgresql": "postgresql+psycopg2",
    "postgres": "postgresql+psycopg2",
    "mysql": "mysql+mysqlconnector",
    "mariadb": "mariadb+mysqlconnector",
}


def resolve_database_type(url: str) -> str:
    """Map a SQLAlchemy URL backend to a database type name."""
    try:
        backend = make_url(url).get_backend_name()
    except ArgumentError as e:
        raise PipelineDataSourceConfigurationError(
            f"Invalid data source url `{url}`", {"url": url}
        ) from e
    return _BACKEND_DATABASE_TYPES.get(backend, backend)


class DataSourceProperties(BaseModel):
    """Connection properties of one physical data source."""

    model_config = ConfigDict(frozen=True, extra="allow")

    url: str = Field(..., description="SQLAlchemy URL without credentials")
    username: Optional[str] = None
    password: Optional[str] = None


class PipelineDataSourceConfiguration(ABC):
    """Source or target descriptor of a pipeline job."""

    type: str

    @property
    @abstractmethod
    def database_type(self) -> str:
        ...

    @property
    @abstractmethod
    def parameter(self) -> Dict[str, Any]:
        """JSON-serializable form, persisted inside the job configuration."""
        ...


class StandardPipelineDataSourceConfiguration(PipelineDataSourceConfiguration):
    """Descriptor of a single physical data source."""

    type = STANDARD_TYPE

    def __init__(self, properties: DataSourceProperties):
        self.properties = properties

    @classmethod
    def from_parameter(cls, parameter: Dict[str, Any]) -> "StandardPipelineDataSourceConfiguration":
        return cls(DataSourceProperties(**parameter))

    @property
    def url(self) -> str:
        return self.properties.url

    @property
    def database_type(self) -> str:
        return resolve_database_type(self.properties.url)

    @property
    def parameter(self) -> Dict[str, Any]:
        return self.properties.model_dump(exclude_none=True)

    def sqlalchemy_url(self, password: Optional[str] = None) -> URL:
        """Build the connectable URL, with credentials applied."""
        url = make_url(self.properties.url)
        if url.drivername in _DEFAULT_DRIVER_NAMES:
            url = url.set(drivername=_DEFAULT_DRIVER_NAMES[url.drivername])
        if self.properties.username:
            url = url.set(username=self.properties.username)
        if password is not None:
            url = url.set(password=password)
        return url

    def __eq__(self, other: object) -> bool:
        return isinstance(other, StandardPipelineDataSourceConfiguration) and other.properties == self.properties

    def __hash__(self) -> int:
        return hash(self.properties.url)

    def __repr__(self) -> str:
        return f"StandardPipelineDataSourceConfiguration(url={self.properties.url!r})"


class ShardingSpherePipelineDataSourceConfiguration(PipelineDataSourceConfiguration):
    """
    Composite descriptor of a logical database.

    Carries every physical data source and the rule configurations that
    were active when the job was created.
    """

    type = SHARDING_SPHERE_TYPE

    def __init__(
        self,
        database_name: str,
        data_sources: Dict[str, DataSourceProperties],
        rules: Optional[List[ShardingRuleConfiguration]] = None,
    ):
        if not data_sources:
            raise PipelineDataSourceConfigurationError(
                f"Database `{database_name}` has no data sources", {"database": database_name}
            )
        self.database_name = database_name
        self.data_sources = dict(data_sources)
        self.rules = list(rules or [])

    @classmethod
    def from_parameter(cls, parameter: Dict[str, Any]) -> "ShardingSpherePipelineDataSourceConfiguration":
        return cls(
            database_name=parameter["database_name"],
            data_sources={
                name: DataSourceProperties(**props)
                for name, props in parameter.get("data_sources", {}).items()
            },
            rules=[ShardingRuleConfiguration(**each) for each in parameter.get("rules", [])],
        )

    @property
    def database_type(self) -> str:
        first = next(iter(self.data_sources.values()))
        return resolve_database_type(first.url)

    @property
    def parameter(self) -> Dict[str, Any]:
        return {
            "database_name": self.database_name,
            "data_sources": {
                name: props.model_dump(exclude_none=True) for name, props in self.data_sources.items()
            },
            "rules": [each.model_dump(exclude_none=True) for each in self.rules],
        }

    def get_actual_data_source_configuration(self, data_source_name: str) -> StandardPipelineDataSourceConfiguration:
        """Descriptor of one physical data source of this database."""
        props = self.data_sources.get(data_source_name)
        if props is None:
            raise PipelineDataSourceConfigurationError(
                f"Data source `{data_source_name}` does not exist in database `{self.database_name}`",
                {"database": self.database_name, "data_source_name": data_source_name},
            )
        return StandardPipelineDataSourceConfiguration(props)

    def __repr__(self) -> str:
        return (
            f"ShardingSpherePipelineDataSourceConfiguration(database_name={self.database_name!r}, "
            f"data_sources={list(self.data_sources)!r})"
        )


_CONFIGURATION_TYPES = {
    STANDARD_TYPE: StandardPipelineDataSourceConfiguration,
    SHARDING_SPHERE_TYPE: ShardingSpherePipelineDataSourceConfiguration,
}


def create_pipeline_data_source_configuration(
    type_name: str, parameter: Dict[str, Any]
) -> PipelineDataSourceConfiguration:
    """Rebuild a descriptor from its persisted type and parameter."""
    config_class = _CONFIGURATION_TYPES.get(type_name)
    if config_class is None:
        raise PipelineDataSourceConfigurationError(
            f"Unsupported data source configuration type `{type_name}`", {"type": type_name}
        )
    return config_class.from_parameter(parameter)
