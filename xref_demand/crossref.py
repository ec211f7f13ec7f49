import logging
import pandas as pd

from . import settings
from .errors import SchemaError
from .normalizer import normalize_series

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = ["brand", "cross_key", "sku"]
MAPPING_COLUMNS = ["cross_key", "brand", "sku"]
CONFLICT_COLUMNS = [
    "cross_key",
    "brand",
    "sku",
    "chosen",
    "candidate_count",
    "distinct_skus",
    "conflict_type",
]


def flatten_catalog(
    catalog: pd.DataFrame,
    brand_columns: list[tuple[str, str]] = settings.BRAND_COLUMNS,
    sku_column: str = settings.SKU_COLUMN,
    strip_chars: str = settings.STRIP_CHARS,
) -> pd.DataFrame:
    """
    Un-pivots the wide catalog (one row per SKU, one column per brand) into
    the long CrossEntry relation: one (brand, cross_key, sku) row per
    non-empty cell.

    - Brand columns are data: each (column, label) pair contributes one block.
    - Cells whose key normalizes to '' and rows without a SKU are dropped.
    - The result is a set, sorted so that reruns give identical output.
    """
    if sku_column not in catalog.columns:
        raise SchemaError(
            f"Catalog has no '{sku_column}' column.",
            details={"columns": [str(c) for c in catalog.columns]},
        )

    labels = dict(brand_columns)
    present = [col for col, _ in brand_columns if col in catalog.columns]
    missing = [col for col, _ in brand_columns if col not in catalog.columns]
    if missing:
        logger.warning(f"  > ⚠️  Brand columns not in catalog ({len(missing)}): {', '.join(missing)}")
    ignored = [str(c) for c in catalog.columns if c != sku_column and c not in labels]
    if ignored:
        logger.info(f"  > Ignoring unconfigured catalog columns: {', '.join(ignored)}")

    if not present:
        logger.warning("  > ⚠️  No configured brand columns found. Catalog yields no entries.")
        return pd.DataFrame(columns=ENTRY_COLUMNS)

    long_df = catalog.melt(
        id_vars=[sku_column],
        value_vars=present,
        var_name="column",
        value_name="part_number",
    )
    long_df["brand"] = long_df["column"].map(labels)
    long_df["sku"] = long_df[sku_column].astype("string").fillna("").str.strip().astype(object)
    long_df["cross_key"] = normalize_series(long_df["part_number"], strip_chars)

    entries = long_df[(long_df["cross_key"] != "") & (long_df["sku"] != "")]
    entries = (
        entries[ENTRY_COLUMNS]
        .drop_duplicates()
        .sort_values(["cross_key", "brand", "sku"], kind="mergesort")
        .reset_index(drop=True)
    )

    logger.info(
        f"  > Flattened {len(catalog)} catalog rows x {len(present)} brand columns "
        f"into {len(entries)} cross entries."
    )
    return entries


def _priority_rank(brands: pd.Series, brand_priority: list[str]) -> pd.Series:
    order = {brand: position for position, brand in enumerate(brand_priority)}
    return brands.map(order).fillna(len(order)).astype(int)


def resolve_conflicts(
    entries: pd.DataFrame,
    brand_priority: list[str] = settings.BRAND_PRIORITY,
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Picks exactly one (brand, sku) per canonical key.

    Candidates of a key are ordered by (brand priority, brand label, sku) and
    the first one wins. With an empty priority list this is plain lexical
    brand order. Every candidate of a key with more than one entry is
    returned in the conflicts relation, winner flagged with `chosen`.

    Returns (mapping, conflicts).
    """
    missing = set(ENTRY_COLUMNS) - set(entries.columns)
    if missing:
        raise SchemaError(f"Cross entries lack columns: {sorted(missing)}")

    ordered = entries[ENTRY_COLUMNS].drop_duplicates().copy()
    ordered["_priority"] = _priority_rank(ordered["brand"], list(brand_priority))
    ordered = ordered.sort_values(
        ["cross_key", "_priority", "brand", "sku"], kind="mergesort"
    ).reset_index(drop=True)
    ordered["chosen"] = ~ordered.duplicated("cross_key", keep="first")

    mapping = ordered.loc[ordered["chosen"], MAPPING_COLUMNS].reset_index(drop=True)

    stats = ordered.groupby("cross_key").agg(
        candidate_count=("sku", "size"),
        distinct_skus=("sku", "nunique"),
    )
    ordered = ordered.join(stats, on="cross_key")
    conflicts = ordered[ordered["candidate_count"] > 1].copy()
    conflicts["conflict_type"] = (conflicts["distinct_skus"] > 1).map(
        {True: "sku_conflict", False: "brand_overlap"}
    )
    conflicts = conflicts[CONFLICT_COLUMNS].reset_index(drop=True)

    ambiguous_keys = conflicts["cross_key"].nunique()
    sku_conflicts = conflicts.loc[
        conflicts["conflict_type"] == "sku_conflict", "cross_key"
    ].nunique()
    logger.info(f"  > Resolved {len(ordered)} entries to {len(mapping)} unique keys.")
    if ambiguous_keys:
        logger.warning(
            f"  > ⚠️  Ambiguous keys: {ambiguous_keys} "
            f"({sku_conflicts} point at more than one SKU). See conflicts report."
        )
    return mapping, conflicts
