"""Shared fixtures: a small wide catalog, staged demand and sales, and an isolated workspace."""

import pandas as pd
import pytest

from xref_demand import settings

TEST_BRANDS = [
    ("OEMCond", "OEMCond"),
    ("Moog", "Moog"),
    ("MAS", "MAS"),
    ("Delphi", "Delphi"),
]

TEST_REGIONS = {
    "North America": "north_america",
    "Mexico": "mexico",
    "Europe": "europe",
}


@pytest.fixture
def catalog_df() -> pd.DataFrame:
    """Wide catalog as read from disk: every cell text, blanks as NaN."""
    return pd.DataFrame(
        {
            "SusCatalog": ["SUS-10001", "SUS-10002", "SUS-10003", None],
            "OEMCond": ["12345678", "87654321", None, "55555555"],
            "Moog": ["K-123456", "K-999", "K999", None],
            "MAS": ["MS-98765", None, " ", None],
            "Delphi": ["DS.45678", None, None, None],
            "Notes": ["keep", None, None, None],
        }
    )


@pytest.fixture
def demand_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "record_id": ["1", "2", "3", "4", "5", "6", "7", "8", "9"],
            "brand": ["Moog", "MAS", "Delphi", "Moog", "Acme", "Moog", "Moog", "Moog", "Moog"],
            "part_number": ["K123456", "ms-98765", "DS 45678", "K-999", "ZZ-1", "K 999", None, "K123456", "K123456"],
            "quantity": ["1200", "600", "900", "500", "300", "200", "100", "abc", "50"],
            "region": ["North America", "Mexico", "Europe", "Mexico", "Europe", "Asia", "Mexico", "Mexico", None],
            "period": ["2025"] * 9,
        }
    )


@pytest.fixture
def sales_df() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "sku": ["SUS-10001", "SUS-10001", "SUS-10002"],
            "region": ["North America", "Mexico", "Mexico"],
            "sales": [1000.0, 600.0, 0.0],
        }
    )


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Points settings at temporary input/output folders with the test layout."""
    input_dir = tmp_path / "input"
    output_dir = tmp_path / "output"
    input_dir.mkdir()
    monkeypatch.setattr(settings, "INPUT_DIR", input_dir)
    monkeypatch.setattr(settings, "OUTPUT_DIR", output_dir)
    monkeypatch.setattr(settings, "SAVE_JSON_OUTPUT", False)
    monkeypatch.setattr(settings, "KEEP_SNAPSHOTS", False)
    monkeypatch.setattr(settings, "WEBHOOK_URL", None)
    monkeypatch.setattr(settings, "SKU_COLUMN", "SusCatalog")
    monkeypatch.setattr(settings, "BRAND_COLUMNS", TEST_BRANDS)
    monkeypatch.setattr(settings, "BRAND_PRIORITY", [])
    monkeypatch.setattr(settings, "REGION_COLUMNS", TEST_REGIONS)
    monkeypatch.setattr(settings, "STRIP_CHARS", "-. /")
    return tmp_path
