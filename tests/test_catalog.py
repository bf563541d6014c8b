"""
Tests for the versioned metadata catalog.
"""

import pytest

from cdc_control.core.exceptions import DatabaseNotFoundError
from cdc_control.domain.datasource_config import DataSourceProperties
from cdc_control.metadata.catalog import MetaDataCatalog, ShardingSphereDatabase


def make_database(name, *data_source_names):
    return ShardingSphereDatabase(
        name=name,
        data_sources={each: DataSourceProperties(url="sqlite://") for each in data_source_names},
    )


class TestMetaDataCatalog:
    def test_get_database(self, catalog):
        assert set(catalog.get_database("ds0").data_sources) == {"ds0", "ds1"}

    def test_missing_database(self, catalog):
        with pytest.raises(DatabaseNotFoundError):
            catalog.get_database("nope")

    def test_alter_publishes_new_snapshot(self, catalog):
        before = catalog.snapshot()

        after = catalog.alter_database(make_database("ds0", "ds2"))

        assert after.version == before.version + 1
        assert set(before.databases["ds0"].data_sources) == {"ds0", "ds1"}
        assert set(catalog.get_database("ds0").data_sources) == {"ds2"}

    def test_snapshot_is_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog.snapshot().databases["other"] = make_database("other", "ds9")

    def test_replace_and_drop(self):
        catalog = MetaDataCatalog()
        catalog.replace([make_database("a", "ds0"), make_database("b", "ds0")])

        snapshot = catalog.drop_database("a")

        assert list(snapshot.databases) == ["b"]
        assert snapshot.version == 2
        with pytest.raises(DatabaseNotFoundError):
            catalog.drop_database("a")
