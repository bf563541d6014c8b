"""
Tests for capturing and persisting the incremental start position of shards.
"""

import dataclasses
from unittest.mock import MagicMock, patch

import pytest

from cdc_control.core.exceptions import (
    GovernanceStoreError,
    PipelineDataSourceConfigurationError,
    PrepareJobWithGetBinlogPositionError,
    UnsupportedDatabaseTypeError,
)
from cdc_control.domain.datanode import JobDataNodeLine
from cdc_control.domain.job import JobItemProgress, JobStatus
from cdc_control.services.job_config_builder import CDCJobConfigurationBuilder
from cdc_control.services.position_bootstrap import IncrementalPositionBootstrapper
from tests.conftest import make_stream_parameter


@pytest.fixture
def job_config(catalog):
    return CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())


@pytest.fixture
def bootstrapper(pipeline_context):
    return IncrementalPositionBootstrapper(
        pipeline_context.governance,
        pipeline_context.settings,
        data_source_manager_factory=pipeline_context.data_source_manager_factory,
        position_initializer_factory=pipeline_context.position_initializer_factory,
    )


def load_progress(governance, job_id, sharding_item):
    value = governance.get_job_item_progress(job_id, sharding_item)
    return None if value is None else JobItemProgress.model_validate_json(value)


class TestBootstrap:
    def test_every_shard_gets_progress(self, bootstrapper, governance, job_config, position_initializer):
        written = bootstrapper.bootstrap(job_config)

        assert written == [0, 1]
        first = load_progress(governance, job_config.job_id, 0)
        second = load_progress(governance, job_config.job_id, 1)
        assert first.status == JobStatus.PREPARE_SUCCESS
        assert first.data_source_name == "ds0"
        assert second.data_source_name == "ds1"
        assert first.incremental_position and second.incremental_position
        assert first.source_database_type == "SQLite"
        assert position_initializer.calls == [job_config.job_id, job_config.job_id]

    def test_existing_progress_is_skipped(self, bootstrapper, governance, job_config, position_initializer):
        bootstrapper.bootstrap(job_config)
        before = governance.get_job_item_progress(job_config.job_id, 0)

        assert bootstrapper.bootstrap(job_config) == []
        assert governance.get_job_item_progress(job_config.job_id, 0) == before
        assert len(position_initializer.calls) == 2

    def test_failure_is_resumable(self, bootstrapper, governance, job_config, position_initializer):
        position_initializer.fail_on_call = 2

        with pytest.raises(PrepareJobWithGetBinlogPositionError) as exc_info:
            bootstrapper.bootstrap(job_config)

        assert exc_info.value.job_id == job_config.job_id
        assert isinstance(exc_info.value.cause, ConnectionError)
        shard_zero = governance.get_job_item_progress(job_config.job_id, 0)
        assert shard_zero is not None
        assert governance.get_job_item_progress(job_config.job_id, 1) is None

        assert bootstrapper.bootstrap(job_config) == [1]
        assert governance.get_job_item_progress(job_config.job_id, 0) == shard_zero
        assert len(position_initializer.calls) == 3


class TestResourceRelease:
    def make_bootstrapper(self, governance, settings, initializer):
        manager = MagicMock()
        bootstrapper = IncrementalPositionBootstrapper(
            governance,
            settings,
            data_source_manager_factory=lambda settings: manager,
            position_initializer_factory=lambda database_type, settings: initializer,
        )
        return bootstrapper, manager

    def test_manager_closed_on_success(self, governance, settings, job_config, position_initializer):
        bootstrapper, manager = self.make_bootstrapper(governance, settings, position_initializer)

        bootstrapper.bootstrap(job_config)

        manager.close.assert_called_once()
        assert manager.connection.call_count == 2

    def test_manager_closed_on_failure(self, governance, settings, job_config):
        initializer = MagicMock()
        initializer.init.side_effect = OSError("timeout")
        bootstrapper, manager = self.make_bootstrapper(governance, settings, initializer)

        with pytest.raises(PrepareJobWithGetBinlogPositionError):
            bootstrapper.bootstrap(job_config)

        manager.close.assert_called_once()

    def test_unsupported_database_is_job_scoped(self, governance, settings, job_config):
        manager = MagicMock()

        def unsupported(database_type, settings):
            raise UnsupportedDatabaseTypeError(database_type)

        bootstrapper = IncrementalPositionBootstrapper(
            governance,
            settings,
            data_source_manager_factory=lambda settings: manager,
            position_initializer_factory=unsupported,
        )

        with pytest.raises(PrepareJobWithGetBinlogPositionError) as exc_info:
            bootstrapper.bootstrap(job_config)

        assert exc_info.value.job_id == job_config.job_id
        assert isinstance(exc_info.value.cause, UnsupportedDatabaseTypeError)
        manager.close.assert_called_once()

    def test_invalid_persisted_shard_is_job_scoped(self, governance, settings, job_config, position_initializer):
        line = JobDataNodeLine.unmarshal("orders:ds7.orders_0")
        persisted = dataclasses.replace(job_config, job_sharding_data_nodes=(line,))
        bootstrapper, manager = self.make_bootstrapper(governance, settings, position_initializer)

        with pytest.raises(PrepareJobWithGetBinlogPositionError) as exc_info:
            bootstrapper.bootstrap(persisted)

        assert exc_info.value.job_id == job_config.job_id
        assert isinstance(exc_info.value.cause, PipelineDataSourceConfigurationError)
        assert position_initializer.calls == []
        manager.close.assert_called_once()

    def test_store_failure_is_job_scoped(self, governance, settings, job_config, position_initializer):
        bootstrapper, manager = self.make_bootstrapper(governance, settings, position_initializer)

        with patch.object(
            governance, "persist_job_item_progress", side_effect=GovernanceStoreError("store unavailable")
        ):
            with pytest.raises(PrepareJobWithGetBinlogPositionError) as exc_info:
                bootstrapper.bootstrap(job_config)

        assert exc_info.value.job_id == job_config.job_id
        assert isinstance(exc_info.value.cause, GovernanceStoreError)
        manager.close.assert_called_once()
