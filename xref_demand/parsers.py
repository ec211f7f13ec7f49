import logging
from pathlib import Path

import pandas as pd
from pydantic import ValidationError

from . import settings
from .errors import InputFileError, SchemaError
from .schemas import SalesRow
from .utils import clean_headers, load_csv, load_table

logger = logging.getLogger(__name__)

# Header spellings seen in staged retailer files -> internal column names.
DEMAND_HEADER_ALIASES = {
    "id": "record_id",
    "record id": "record_id",
    "brand name": "brand",
    "cross name": "brand",
    "part number": "part_number",
    "part_no": "part_number",
    "part #": "part_number",
    "qty": "quantity",
    "annual qty": "quantity",
    "annual quantity": "quantity",
    "region name": "region",
    "year": "period",
    "reporting period": "period",
}

SALES_HEADER_ALIASES = {
    "suscatalog": "sku",
    "internal sku": "sku",
    "qty": "sales",
    "sales qty": "sales",
    "sales quantity": "sales",
}


def _apply_aliases(df: pd.DataFrame, aliases: dict[str, str]) -> pd.DataFrame:
    renamed = {}
    for column in df.columns:
        key = str(column).strip().lower()
        renamed[column] = aliases.get(key, key.replace(" ", "_"))
    return df.rename(columns=renamed)


def _require(df: pd.DataFrame | None, path: Path, kind: str) -> pd.DataFrame:
    if df is None:
        raise InputFileError(f"Could not load {kind} file: {path}", details={"path": str(path)})
    return clean_headers(df)


def parse_catalog(path: Path) -> pd.DataFrame:
    """Loads the wide equivalence catalog: one row per SKU, one column per brand."""
    df = _require(load_table(path), path, "catalog")
    if settings.SKU_COLUMN not in df.columns:
        raise SchemaError(
            f"Catalog {path.name} has no '{settings.SKU_COLUMN}' column.",
            details={"columns": list(df.columns)},
        )
    logger.info(f"✅ Parsed {path.name}: {len(df)} catalog rows, {len(df.columns) - 1} brand columns.")
    return df


def parse_demand(path: Path) -> pd.DataFrame:
    """Loads the staged retailer demand relation with internal column names."""
    df = _apply_aliases(_require(load_table(path), path, "demand"), DEMAND_HEADER_ALIASES)
    logger.info(f"✅ Parsed {path.name}: {len(df)} demand rows.")
    return df


def parse_sales(path: Path) -> pd.DataFrame:
    """
    Loads internal sales per (sku, region). Invalid rows are dropped with a
    warning and duplicate keys are summed.
    """
    df = _apply_aliases(_require(load_table(path), path, "sales"), SALES_HEADER_ALIASES)
    missing = [col for col in ("sku", "region", "sales") if col not in df.columns]
    if missing:
        raise SchemaError(
            f"Sales file {path.name} lacks columns: {', '.join(missing)}",
            details={"columns": list(df.columns)},
        )

    rows = []
    dropped = 0
    for row in df[["sku", "region", "sales"]].to_dict("records"):
        if any(pd.isna(value) or not str(value).strip() for value in row.values()):
            dropped += 1
            continue
        try:
            rows.append(SalesRow(sku=str(row["sku"]).strip(), region=str(row["region"]).strip(), sales=row["sales"]).model_dump())
        except ValidationError:
            dropped += 1
    if dropped:
        logger.warning(f"  > ⚠️  Dropped {dropped} sales rows with missing or invalid values.")

    sales = pd.DataFrame(rows, columns=["sku", "region", "sales"])
    sales = sales.groupby(["sku", "region"], as_index=False)["sales"].sum()
    logger.info(f"✅ Parsed {path.name}: {len(sales)} (sku, region) sales figures.")
    return sales


def parse_mapping(path: Path) -> pd.DataFrame:
    """Loads a previously published resolved mapping."""
    df = _require(load_csv(path), path, "resolved mapping")
    missing = [col for col in ("cross_key", "brand", "sku") if col not in df.columns]
    if missing:
        raise SchemaError(f"Mapping file {path.name} lacks columns: {', '.join(missing)}")

    keys = df["cross_key"]
    blank = keys.isna() | (keys.fillna("").str.strip() == "")
    if blank.any():
        raise SchemaError(
            f"Mapping file {path.name} has {int(blank.sum())} rows without a cross_key.",
            details={"rows": [int(i) + 1 for i in df.index[blank]]},
        )
    duplicated = sorted(keys[keys.duplicated()].unique())
    if duplicated:
        raise SchemaError(
            f"Mapping file {path.name} maps {len(duplicated)} cross_keys more than once.",
            details={"duplicate_keys": duplicated},
        )
    return df[["cross_key", "brand", "sku"]]
