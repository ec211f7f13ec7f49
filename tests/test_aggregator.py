import math

import pandas as pd
import pytest

from xref_demand.aggregator import aggregate_demand, validate_regions
from xref_demand.errors import ConfigurationError

from conftest import TEST_REGIONS


def _records(rows):
    return pd.DataFrame(rows, columns=["record_id", "sku", "quantity", "region"])


class TestValidateRegions:
    """Region configuration problems abort the run."""

    def test_empty_region_list(self):
        """No regions, no run."""
        with pytest.raises(ConfigurationError):
            validate_regions({})

    @pytest.mark.parametrize(
        "regions",
        [
            {" ": "blank"},
            {"Mexico": ""},
            {"Mexico": "mx", "Europe": "mx"},
            {"Mexico": "total"},
        ],
    )
    def test_invalid_region_configs(self, regions):
        """Blank, duplicate or reserved columns are rejected."""
        with pytest.raises(ConfigurationError):
            validate_regions(regions)

    def test_valid_config(self):
        """The canonical layout passes."""
        validate_regions(TEST_REGIONS)


class TestAggregateDemand:
    """Per-SKU regional rollup and ranking."""

    def test_single_sku_across_regions(self):
        """Four brand numbers for one SKU roll up without double counting."""
        records = _records(
            [
                ("1", "SUS-10001", 1200, "North America"),
                ("2", "SUS-10001", 600, "Mexico"),
                ("3", "SUS-10001", 900, "Europe"),
            ]
        )
        result = aggregate_demand(records, TEST_REGIONS)
        row = result.iloc[0]
        assert row["sku"] == "SUS-10001"
        assert row["north_america"] == 1200
        assert row["mexico"] == 600
        assert row["europe"] == 900
        assert row["total"] == 2700
        assert row["rank"] == 1

    def test_absent_region_is_nan_not_zero(self):
        """No reported demand stays distinguishable from zero demand."""
        records = _records([("1", "A", 0, "Mexico"), ("2", "A", 5, "Europe")])
        row = aggregate_demand(records, TEST_REGIONS).iloc[0]
        assert row["mexico"] == 0
        assert math.isnan(row["north_america"])

    def test_unknown_region_counts_only_toward_total(self):
        """A region outside the configured list adds to total, not to any subtotal."""
        records = _records([("1", "A", 10, "Mexico"), ("2", "A", 7, "Asia")])
        row = aggregate_demand(records, TEST_REGIONS).iloc[0]
        assert row["total"] == 17
        assert row["mexico"] == 10
        assert math.isnan(row["europe"])

    def test_unresolved_rows_excluded(self):
        """Rows without SKU are left out of every aggregate."""
        records = _records([("1", "A", 10, "Mexico"), ("2", None, 99, "Mexico")])
        result = aggregate_demand(records, TEST_REGIONS)
        assert result["sku"].tolist() == ["A"]
        assert result.loc[0, "total"] == 10

    def test_rank_descending_total_ties_by_sku(self):
        """Higher total ranks first; equal totals order by SKU."""
        records = _records(
            [
                ("1", "C", 50, "Mexico"),
                ("2", "B", 50, "Europe"),
                ("3", "A", 10, "Mexico"),
                ("4", "D", 80, "Mexico"),
            ]
        )
        result = aggregate_demand(records, TEST_REGIONS)
        assert result["sku"].tolist() == ["D", "B", "C", "A"]
        assert result["rank"].tolist() == [1, 2, 3, 4]

    def test_rank_monotonic(self):
        """total(A) > total(B) implies rank(A) < rank(B)."""
        records = _records([(str(i), f"S{i % 7}", float(i), "Mexico") for i in range(1, 40)])
        result = aggregate_demand(records, TEST_REGIONS)
        for _, a in result.iterrows():
            for _, b in result.iterrows():
                if a["total"] > b["total"]:
                    assert a["rank"] < b["rank"]

    def test_order_independent(self):
        """Shuffled records give identical aggregates."""
        rows = [(str(i), f"S{i % 5}", i * 1.1, ["Mexico", "Europe", "Asia"][i % 3]) for i in range(60)]
        first = aggregate_demand(_records(rows), TEST_REGIONS)
        second = aggregate_demand(_records(list(reversed(rows))), TEST_REGIONS)
        pd.testing.assert_frame_equal(first, second)

    def test_column_layout_follows_configuration(self):
        """Subtotal columns appear in configured order between sku and total."""
        result = aggregate_demand(_records([("1", "A", 1, "Mexico")]), TEST_REGIONS)
        assert list(result.columns) == ["sku", "north_america", "mexico", "europe", "total", "rank"]

    def test_only_unknown_regions(self):
        """A SKU seen only in unknown regions still gets a total and a rank."""
        result = aggregate_demand(_records([("1", "A", 4, "Asia")]), TEST_REGIONS)
        assert result.loc[0, "total"] == 4
        assert result[["north_america", "mexico", "europe"]].isna().all(axis=None)

    def test_nothing_resolved(self):
        """No resolved rows give an empty aggregate with the full layout."""
        result = aggregate_demand(_records([("1", None, 4, "Mexico")]), TEST_REGIONS)
        assert result.empty
        assert "total" in result.columns

    def test_empty_regions_refused(self):
        """The aggregator will not run without regions."""
        with pytest.raises(ConfigurationError):
            aggregate_demand(_records([("1", "A", 1, "Mexico")]), {})
