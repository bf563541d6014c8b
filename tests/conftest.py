"""
Shared test fixtures.

The coordination store is an in-process fakeredis instance; source data
sources are in-memory SQLite and positions come from a recording fake
initializer, so no external service is needed.
"""

import itertools

import fakeredis
import pytest

from cdc_control.config.settings import CDCSettings
from cdc_control.context import PipelineContext
from cdc_control.core.datasource import PipelineDataSourceManager
from cdc_control.core.governance import GovernanceRepository
from cdc_control.domain.datanode import DataNode
from cdc_control.domain.datasource_config import DataSourceProperties
from cdc_control.domain.job import StreamDataParameter
from cdc_control.domain.position import WalPosition
from cdc_control.domain.process import ProcessConfigurationHolder
from cdc_control.domain.rule import (
    ShardingRuleConfiguration,
    ShardingStrategyConfiguration,
    ShardingTableRuleConfiguration,
)
from cdc_control.metadata.catalog import MetaDataCatalog, ShardingSphereDatabase
from cdc_control.services.job_api import CDCJobAPI
from cdc_control.services.position_initializer import PositionInitializer


class RecordingPositionInitializer(PositionInitializer):
    """Hands out increasing WAL positions and records every call."""

    def __init__(self):
        self.calls = []
        self.fail_on_call = None
        self._counter = itertools.count(1)

    def init(self, connection, slot_name_suffix):
        self.calls.append(slot_name_suffix)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise ConnectionError("source unreachable")
        return WalPosition(f"0/{next(self._counter):X}")


@pytest.fixture
def settings():
    return CDCSettings(_env_file=None)


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def governance(redis_client):
    return GovernanceRepository(redis_client, namespace="test")


@pytest.fixture
def order_rule():
    return ShardingRuleConfiguration(
        tables=[
            ShardingTableRuleConfiguration(
                logic_table="orders",
                actual_data_nodes="ds${0..1}.orders_${0..1}",
                table_strategy=ShardingStrategyConfiguration(
                    sharding_column="order_id", sharding_algorithm_name="orders_inline"
                ),
            )
        ],
        default_database_strategy=ShardingStrategyConfiguration(
            sharding_column="user_id", sharding_algorithm_name="database_inline"
        ),
    )


@pytest.fixture
def catalog(order_rule):
    return MetaDataCatalog(
        [
            ShardingSphereDatabase(
                name="ds0",
                data_sources={
                    "ds0": DataSourceProperties(url="sqlite://"),
                    "ds1": DataSourceProperties(url="sqlite://"),
                },
                rule_configurations=(order_rule,),
            )
        ]
    )


@pytest.fixture
def position_initializer():
    return RecordingPositionInitializer()


@pytest.fixture
def pipeline_context(settings, governance, catalog, position_initializer):
    return PipelineContext(
        settings=settings,
        governance=governance,
        catalog=catalog,
        process_configuration=ProcessConfigurationHolder(),
        data_source_manager_factory=PipelineDataSourceManager,
        position_initializer_factory=lambda database_type, settings: position_initializer,
    )


@pytest.fixture
def job_api(pipeline_context):
    return CDCJobAPI(pipeline_context)


def make_stream_parameter(full=False, tables=("public.orders",), data_nodes_map=None):
    """The two-shard ``orders`` request used across tests."""
    if data_nodes_map is None:
        data_nodes_map = {
            "orders": (DataNode("ds0", "orders_0"), DataNode("ds1", "orders_1")),
        }
    return StreamDataParameter(
        database="ds0",
        schema_table_names=tuple(tables),
        full=full,
        decode_with_tx=False,
        data_nodes_map=data_nodes_map,
    )
