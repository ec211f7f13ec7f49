import logging
from typing import Mapping

import pandas as pd

from . import settings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

RESERVED_COLUMNS = {"sku", "total", "rank"}


def validate_regions(region_columns: Mapping[str, str]) -> None:
    """Refuses region configurations the aggregate cannot be built from."""
    if not region_columns:
        raise ConfigurationError("Region list is empty. Configure at least one region.")

    labels = [str(label).strip() for label in region_columns]
    columns = [str(column).strip() for column in region_columns.values()]
    if any(not label for label in labels):
        raise ConfigurationError("Region labels must not be blank.", details={"labels": labels})
    if any(not column for column in columns):
        raise ConfigurationError("Region columns must not be blank.", details={"columns": columns})
    if len(set(labels)) != len(labels):
        raise ConfigurationError("Region labels must be unique.", details={"labels": labels})
    if len(set(columns)) != len(columns):
        raise ConfigurationError("Region columns must be unique.", details={"columns": columns})
    clashes = sorted(RESERVED_COLUMNS & set(columns))
    if clashes:
        raise ConfigurationError(
            f"Region columns collide with reserved columns: {', '.join(clashes)}",
            details={"columns": columns},
        )


def aggregate_demand(
    records: pd.DataFrame,
    region_columns: Mapping[str, str] = settings.REGION_COLUMNS,
) -> pd.DataFrame:
    """
    Rolls resolved demand up to one row per internal SKU.

    - One subtotal column per configured region; NaN when the SKU has no
      demand reported for that region.
    - `total` sums every resolved row of the SKU, including rows whose region
      is not configured.
    - `rank` orders SKUs by descending total, ties broken by SKU ascending,
      so ranks run 1..n without gaps or repeats.
    """
    validate_regions(region_columns)
    labels = list(region_columns)
    subtotal_columns = [region_columns[label] for label in labels]
    output_columns = ["sku"] + subtotal_columns + ["total", "rank"]

    resolved = records[records["sku"].notna()].copy()
    if resolved.empty:
        logger.warning("  > ⚠️  No resolved demand to aggregate.")
        return pd.DataFrame(columns=output_columns)

    resolved["quantity"] = pd.to_numeric(resolved["quantity"])
    resolved["region"] = resolved["region"].astype(str).str.strip()

    unknown = resolved[~resolved["region"].isin(labels)]
    if not unknown.empty:
        names = sorted(unknown["region"].unique())
        logger.warning(
            f"  > ⚠️  Unrecognized region labels ({len(unknown)} rows, "
            f"{unknown['quantity'].sum():g} units count toward totals only): {', '.join(names)}"
        )

    # Fixed row order so float sums do not depend on input order.
    resolved = resolved.sort_values(["sku", "region", "quantity"], kind="mergesort")

    totals = resolved.groupby("sku")["quantity"].sum().rename("total")
    known = resolved[resolved["region"].isin(labels)]
    if known.empty:
        subtotals = pd.DataFrame(index=totals.index, columns=labels, dtype=float)
    else:
        subtotals = known.groupby(["sku", "region"])["quantity"].sum().unstack("region")
    subtotals = subtotals.reindex(columns=labels).rename(columns=dict(region_columns))

    result = totals.to_frame().join(subtotals, how="left").reset_index()
    result = result.sort_values(["total", "sku"], ascending=[False, True], kind="mergesort")
    result["rank"] = range(1, len(result) + 1)
    result = result.reset_index(drop=True)

    logger.info(f"  > Aggregated {len(resolved)} resolved rows into {len(result)} SKUs.")
    return result[output_columns]
