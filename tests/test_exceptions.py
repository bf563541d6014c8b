"""
Tests for the control plane exception hierarchy.
"""

import pickle

import pytest

from cdc_control.core.exceptions import (
    DatabaseNotFoundError,
    GovernanceStoreError,
    PipelineDataSourceConfigurationError,
    PipelineError,
    PipelineJobCreationWithInvalidShardingCountError,
    PipelineJobError,
    PipelineJobHasAlreadyStartedError,
    PipelineJobInvalidDataNodesError,
    PipelineJobNotFoundError,
    PipelineJobNotReadyError,
    PrepareJobWithGetBinlogPositionError,
    UnsupportedDatabaseTypeError,
    UnsupportedPipelineJobOperationError,
    UnsupportedPipelineJobTypeError,
)


def pickle_round_trip(error):
    return pickle.loads(pickle.dumps(error))


class TestPickling:
    @pytest.mark.parametrize(
        "error",
        [
            PipelineError("store down", {"path": "/pipeline"}),
            PipelineJobError("job failed", "j0301abc", {"sharding_item": 1}),
            PipelineJobCreationWithInvalidShardingCountError("j0301abc"),
            PipelineJobInvalidDataNodesError("j0301abc", 0, ["ds0", "ds1"], "must read exactly one data source"),
            PrepareJobWithGetBinlogPositionError("j0301abc", ConnectionError("refused")),
            PipelineJobNotFoundError("j0301abc"),
            PipelineJobHasAlreadyStartedError("j0301abc"),
            PipelineJobNotReadyError("j0301abc", [0, 2]),
            UnsupportedPipelineJobOperationError("commit", "CDC"),
            UnsupportedPipelineJobTypeError("MIGRATION"),
            PipelineDataSourceConfigurationError("bad url", {"url": "x"}),
            UnsupportedDatabaseTypeError("H2"),
            DatabaseNotFoundError("orders"),
            GovernanceStoreError("redis unavailable"),
        ],
        ids=lambda error: type(error).__name__,
    )
    def test_error_survives_pickling(self, error):
        restored = pickle_round_trip(error)

        assert type(restored) is type(error)
        assert str(restored) == str(error)
        assert restored.message == error.message
        assert restored.details == error.details

    def test_binlog_position_error_keeps_job_and_cause(self):
        restored = pickle_round_trip(PrepareJobWithGetBinlogPositionError("j0301abc", ConnectionError("refused")))

        assert restored.job_id == "j0301abc"
        assert isinstance(restored.cause, ConnectionError)
        assert str(restored.cause) == "refused"
        assert restored.details == {"job_id": "j0301abc", "cause": "refused"}

    def test_job_scoped_attributes_survive(self):
        not_ready = pickle_round_trip(PipelineJobNotReadyError("j0301abc", [0, 2]))
        invalid = pickle_round_trip(PipelineJobInvalidDataNodesError("j0301abc", 1, ["ds7"], "reads an unknown data source"))

        assert not_ready.missing_items == [0, 2]
        assert invalid.sharding_item == 1
        assert invalid.data_source_names == ["ds7"]
        assert invalid.job_id == "j0301abc"


class TestMessages:
    def test_str_is_the_message(self):
        error = PipelineJobNotFoundError("j0301abc")

        assert str(error) == "Can not find job `j0301abc`"
        assert error.details == {"job_id": "j0301abc"}

    def test_operation_error_details(self):
        error = UnsupportedPipelineJobOperationError("commit", "CDC")

        assert error.operation == "commit"
        assert error.details == {"operation": "commit", "job_type": "CDC"}
