"""
Tests for building CDC job configurations from stream requests.
"""

from unittest.mock import patch

import pytest

from cdc_control.core.exceptions import (
    DatabaseNotFoundError,
    PipelineJobCreationWithInvalidShardingCountError,
    PipelineJobInvalidDataNodesError,
)
from cdc_control.domain.datasource_config import (
    DataSourceProperties,
    ShardingSpherePipelineDataSourceConfiguration,
)
from cdc_control.domain.datanode import DataNode
from cdc_control.domain.job import (
    CDCJobParameter,
    StreamDataParameter,
    swap_to_job_configuration,
    swap_to_job_parameter,
)
from cdc_control.metadata.catalog import ShardingSphereDatabase
from cdc_control.services.job_config_builder import CDCJobConfigurationBuilder
from cdc_control.services.job_id import generate_cdc_job_id
from tests.conftest import make_stream_parameter


class TestCDCJobConfigurationBuilder:
    def test_two_shard_job(self, catalog):
        job_config = CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())

        assert job_config.job_id == generate_cdc_job_id("ds0", ["public.orders"], False)
        assert job_config.job_sharding_count == 2
        assert job_config.source_database_type == "SQLite"
        assert job_config.tables_first_data_nodes.marshal() == "orders:ds0.orders_0"
        assert isinstance(job_config.data_source_config, ShardingSpherePipelineDataSourceConfiguration)
        assert set(job_config.data_source_config.data_sources) == {"ds0", "ds1"}

    def test_explicit_identity_and_type(self, catalog):
        job_config = CDCJobConfigurationBuilder(catalog).build(
            make_stream_parameter(), job_id="j0301custom", source_database_type="PostgreSQL"
        )

        assert job_config.job_id == "j0301custom"
        assert job_config.source_database_type == "PostgreSQL"

    def test_zero_shards_rejected(self, catalog):
        with pytest.raises(PipelineJobCreationWithInvalidShardingCountError) as exc_info:
            CDCJobConfigurationBuilder(catalog).build(make_stream_parameter(data_nodes_map={}))

        assert exc_info.value.job_id.startswith("j0301")

    def test_unknown_database(self, catalog):
        param = StreamDataParameter(
            database="missing",
            schema_table_names=("public.orders",),
            full=False,
            decode_with_tx=False,
            data_nodes_map={"orders": (DataNode("ds0", "orders_0"),)},
        )

        with pytest.raises(DatabaseNotFoundError):
            CDCJobConfigurationBuilder(catalog).build(param)

    def test_snapshot_is_detached_from_catalog(self, catalog, order_rule):
        job_config = CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())
        catalog.alter_database(
            ShardingSphereDatabase(name="ds0", data_sources={"ds9": DataSourceProperties(url="sqlite://")})
        )

        assert set(job_config.data_source_config.data_sources) == {"ds0", "ds1"}
        assert job_config.data_source_config.rules == [order_rule]

    def test_shard_spanning_data_sources_rejected(self, catalog):
        param = make_stream_parameter(
            tables=("public.orders", "public.items"),
            data_nodes_map={
                "orders": (DataNode("ds0", "orders_0"), DataNode("ds1", "orders_1")),
                "items": (DataNode("ds1", "items_0"), DataNode("ds0", "items_1")),
            },
        )

        with pytest.raises(PipelineJobInvalidDataNodesError) as exc_info:
            CDCJobConfigurationBuilder(catalog).build(param)

        assert exc_info.value.job_id == generate_cdc_job_id("ds0", ["public.orders", "public.items"], False)
        assert exc_info.value.sharding_item == 0
        assert exc_info.value.data_source_names == ["ds0", "ds1"]

    def test_unknown_data_source_rejected(self, catalog):
        param = make_stream_parameter(data_nodes_map={"orders": (DataNode("ds7", "orders_0"),)})

        with pytest.raises(PipelineJobInvalidDataNodesError) as exc_info:
            CDCJobConfigurationBuilder(catalog).build(param)

        assert exc_info.value.data_source_names == ["ds7"]

    def test_table_without_data_nodes_is_reported(self, catalog):
        param = make_stream_parameter(tables=("public.orders", "public.users"))

        with patch("cdc_control.services.job_config_builder.logger") as logger:
            job_config = CDCJobConfigurationBuilder(catalog).build(param)

        assert job_config.job_sharding_count == 2
        logger.warning.assert_called_once_with(
            "Subscribed tables have no data nodes", job_id=job_config.job_id, tables=["public.users"]
        )

    def test_fully_mapped_tables_are_not_reported(self, catalog):
        with patch("cdc_control.services.job_config_builder.logger") as logger:
            CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())

        logger.warning.assert_not_called()


class TestJobParameterPersistence:
    def test_persisted_form_restores_configuration(self, catalog):
        job_config = CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())

        text = swap_to_job_parameter(job_config).model_dump_json()
        restored = swap_to_job_configuration(CDCJobParameter.model_validate_json(text))

        assert restored.job_id == job_config.job_id
        assert restored.job_sharding_data_nodes == job_config.job_sharding_data_nodes
        assert restored.tables_first_data_nodes == job_config.tables_first_data_nodes
        assert restored.data_source_config.rules == job_config.data_source_config.rules
        assert restored.schema_table_names == ("public.orders",)
