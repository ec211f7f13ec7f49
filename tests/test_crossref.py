import pandas as pd
import pytest

from xref_demand.crossref import flatten_catalog, resolve_conflicts
from xref_demand.errors import SchemaError

from conftest import TEST_BRANDS


def _entries(rows):
    return pd.DataFrame(rows, columns=["brand", "cross_key", "sku"])


class TestFlattenCatalog:
    """Wide catalog -> long CrossEntry relation."""

    def test_one_entry_per_filled_cell(self, catalog_df):
        """Blank cells, cells normalizing to '' and rows without SKU are dropped."""
        entries = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        assert len(entries) == 7
        assert list(entries.columns) == ["brand", "cross_key", "sku"]
        assert "55555555" not in set(entries["cross_key"])
        assert "" not in set(entries["cross_key"])

    def test_keys_are_normalized(self, catalog_df):
        """Catalog cells go through the same normalizer as demand rows."""
        entries = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        sus_10001 = entries[entries["sku"] == "SUS-10001"]
        assert set(sus_10001["cross_key"]) == {"12345678", "K123456", "MS98765", "DS45678"}

    def test_brand_labels_come_from_configuration(self, catalog_df):
        """The brand label, not the column name, is recorded."""
        entries = flatten_catalog(catalog_df, [("Moog", "MOOG Chassis")], "SusCatalog")
        assert set(entries["brand"]) == {"MOOG Chassis"}

    def test_unconfigured_columns_ignored(self, catalog_df):
        """Columns outside the brand list never produce entries."""
        entries = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        assert "KEEP" not in set(entries["cross_key"])

    def test_rerun_is_identical_and_order_independent(self, catalog_df):
        """Same catalog in any row order gives the same relation."""
        first = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        shuffled = catalog_df.sample(frac=1, random_state=7).reset_index(drop=True)
        second = flatten_catalog(shuffled, TEST_BRANDS, "SusCatalog")
        pd.testing.assert_frame_equal(first, second)

    def test_missing_sku_column_raises(self, catalog_df):
        """A catalog without the SKU column cannot be flattened."""
        with pytest.raises(SchemaError):
            flatten_catalog(catalog_df, TEST_BRANDS, "InternalSku")

    def test_no_brand_columns_present(self, catalog_df):
        """An empty relation is returned when no configured brand column exists."""
        entries = flatten_catalog(catalog_df, [("Unknown", "Unknown")], "SusCatalog")
        assert entries.empty
        assert list(entries.columns) == ["brand", "cross_key", "sku"]


class TestResolveConflicts:
    """Deterministic choice of one SKU per canonical key."""

    def test_ambiguous_key_lexical_brand_order(self):
        """X1 under BrandA/SKU-1 and BrandB/SKU-2 resolves to BrandA -> SKU-1."""
        entries = _entries([("BrandB", "X1", "SKU-2"), ("BrandA", "X1", "SKU-1")])
        mapping, conflicts = resolve_conflicts(entries, brand_priority=[])

        assert mapping.to_dict("records") == [{"cross_key": "X1", "brand": "BrandA", "sku": "SKU-1"}]
        assert len(conflicts) == 2
        assert set(zip(conflicts["brand"], conflicts["sku"])) == {("BrandA", "SKU-1"), ("BrandB", "SKU-2")}
        chosen = conflicts[conflicts["chosen"]]
        assert chosen["sku"].tolist() == ["SKU-1"]
        assert set(conflicts["conflict_type"]) == {"sku_conflict"}
        assert set(conflicts["candidate_count"]) == {2}

    def test_brand_priority_overrides_lexical_order(self):
        """A listed brand beats lexically smaller unlisted brands."""
        entries = _entries([("BrandA", "X1", "SKU-1"), ("BrandB", "X1", "SKU-2")])
        mapping, _ = resolve_conflicts(entries, brand_priority=["BrandB"])
        assert mapping.loc[0, "sku"] == "SKU-2"

    def test_same_brand_ties_broken_by_sku(self, catalog_df):
        """Within one brand the lexically smallest SKU wins."""
        entries = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        mapping, conflicts = resolve_conflicts(entries, brand_priority=[])
        lookup = dict(zip(mapping["cross_key"], mapping["sku"]))
        assert lookup["K999"] == "SUS-10002"
        assert conflicts["cross_key"].unique().tolist() == ["K999"]

    def test_brand_overlap_classified(self):
        """Several brands pointing at the same SKU are reported as brand_overlap."""
        entries = _entries([("BrandA", "X1", "SKU-1"), ("BrandB", "X1", "SKU-1")])
        mapping, conflicts = resolve_conflicts(entries, brand_priority=[])
        assert len(mapping) == 1
        assert set(conflicts["conflict_type"]) == {"brand_overlap"}
        assert set(conflicts["distinct_skus"]) == {1}

    def test_one_row_per_key(self, catalog_df):
        """Every distinct key appears exactly once in the mapping."""
        entries = flatten_catalog(catalog_df, TEST_BRANDS, "SusCatalog")
        mapping, _ = resolve_conflicts(entries, brand_priority=[])
        assert mapping["cross_key"].is_unique
        assert set(mapping["cross_key"]) == set(entries["cross_key"])

    def test_order_independent(self):
        """Shuffled entries give the same winners."""
        rows = [
            ("Moog", "K1", "S-3"),
            ("Delphi", "K1", "S-2"),
            ("MAS", "K1", "S-1"),
            ("Moog", "K2", "S-1"),
            ("Delphi", "K2", "S-1"),
        ]
        first, first_conflicts = resolve_conflicts(_entries(rows), brand_priority=[])
        second, second_conflicts = resolve_conflicts(_entries(list(reversed(rows))), brand_priority=[])
        pd.testing.assert_frame_equal(first, second)
        pd.testing.assert_frame_equal(first_conflicts, second_conflicts)
        assert dict(zip(first["cross_key"], first["brand"])) == {"K1": "Delphi", "K2": "Delphi"}

    def test_unambiguous_entries_produce_no_conflicts(self):
        """Unique keys are not reported."""
        entries = _entries([("A", "K1", "S-1"), ("B", "K2", "S-1")])
        _, conflicts = resolve_conflicts(entries, brand_priority=[])
        assert conflicts.empty

    def test_empty_entries(self):
        """No entries give an empty mapping and no conflicts."""
        mapping, conflicts = resolve_conflicts(_entries([]), brand_priority=[])
        assert mapping.empty
        assert conflicts.empty
