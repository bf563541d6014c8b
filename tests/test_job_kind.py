"""
Tests for job kind dispatch by persisted job type tag.
"""

import pytest

from cdc_control.core.exceptions import UnsupportedPipelineJobTypeError
from cdc_control.services.job_config_builder import CDCJobConfigurationBuilder
from cdc_control.services.job_id import generate_cdc_job_id
from cdc_control.services.job_kind import CDCJobKind, get_job_kind, register_job_kind
from tests.conftest import make_stream_parameter


class FakeMigrationJobKind:
    def __init__(self, context):
        self.context = context


class TestJobKindRegistry:
    def test_cdc_kind(self, pipeline_context):
        assert isinstance(get_job_kind("CDC", pipeline_context), CDCJobKind)

    def test_unknown_tag(self, pipeline_context):
        with pytest.raises(UnsupportedPipelineJobTypeError):
            get_job_kind("STREAMING", pipeline_context)

    def test_register(self, pipeline_context):
        register_job_kind("MIGRATION", FakeMigrationJobKind)

        job_kind = get_job_kind("MIGRATION", pipeline_context)

        assert isinstance(job_kind, FakeMigrationJobKind)
        assert job_kind.context is pipeline_context


class TestCDCJobKind:
    def test_record_round_trip(self, pipeline_context, catalog):
        job_kind = CDCJobKind(pipeline_context)
        job_config = CDCJobConfigurationBuilder(catalog).build(make_stream_parameter())

        record = job_kind.build_record(job_config)

        assert record.job_type == "CDC"
        assert record.disabled is True
        assert record.sharding_total_count == 2
        assert record.job_class_name == "cdc_control.services.job_kind.CDCJobKind"
        assert job_kind.swap_to_job_configuration(record).job_sharding_data_nodes == job_config.job_sharding_data_nodes

    def test_marshal_job_id(self, pipeline_context):
        job_kind = CDCJobKind(pipeline_context)

        assert job_kind.marshal_job_id(make_stream_parameter()) == generate_cdc_job_id("ds0", ["public.orders"], False)
