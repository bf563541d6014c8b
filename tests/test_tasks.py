"""
Tests for the CDC job Celery tasks, executed eagerly with a mocked job API.
"""

from unittest.mock import MagicMock, patch

import pytest

from cdc_control.core.exceptions import PrepareJobWithGetBinlogPositionError
from cdc_control.tasks.cdc_job import task as cdc_job_task


@pytest.fixture
def mock_job_api():
    api = MagicMock()
    with patch.object(cdc_job_task, "get_job_api", return_value=api):
        yield api


class TestPrepareIncrementalPositionTask:
    def test_returns_written_items(self, mock_job_api):
        mock_job_api.init_incremental_position.return_value = [0, 1]

        result = cdc_job_task.prepare_incremental_position_task.apply(args=("j0301abc",)).get()

        assert result == {"job_id": "j0301abc", "sharding_items": [0, 1]}
        mock_job_api.init_incremental_position.assert_called_once_with("j0301abc")

    def test_retries_on_position_failure(self, mock_job_api):
        mock_job_api.init_incremental_position.side_effect = PrepareJobWithGetBinlogPositionError(
            "j0301abc", ConnectionError("refused")
        )

        result = cdc_job_task.prepare_incremental_position_task.apply(args=("j0301abc",))

        with pytest.raises(PrepareJobWithGetBinlogPositionError) as exc_info:
            result.get()
        assert exc_info.value.job_id == "j0301abc"
        assert isinstance(exc_info.value.cause, ConnectionError)
        assert mock_job_api.init_incremental_position.call_count == cdc_job_task.settings.prepare_max_retries + 1

    def test_other_errors_are_not_retried(self, mock_job_api):
        mock_job_api.init_incremental_position.side_effect = KeyError("boom")

        result = cdc_job_task.prepare_incremental_position_task.apply(args=("j0301abc",))

        with pytest.raises(KeyError):
            result.get()
        mock_job_api.init_incremental_position.assert_called_once()


class TestBuildTaskConfigurationTask:
    def test_returns_serializable_config(self, mock_job_api):
        mock_job_api.build_task_configuration_for_item.return_value.to_dict.return_value = {
            "dumper": {"data_source_name": "ds1"},
            "importer": {"sharding_count": 1},
        }

        result = cdc_job_task.build_task_configuration_task.apply(args=("j0301abc", 1)).get()

        assert result["dumper"]["data_source_name"] == "ds1"
        mock_job_api.build_task_configuration_for_item.assert_called_once_with("j0301abc", 1)
