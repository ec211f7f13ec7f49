import logging
import pandas as pd
from pydantic import ValidationError

from . import settings
from .errors import SchemaError
from .normalizer import normalize, normalize_series
from .schemas import DemandRow, RejectedRow

logger = logging.getLogger(__name__)

DEMAND_COLUMNS = ["record_id", "brand", "part_number", "quantity", "region", "period"]
REQUIRED_DEMAND_COLUMNS = ["part_number", "quantity", "region"]
RECORD_COLUMNS = DEMAND_COLUMNS + ["cross_key", "matched_brand", "sku"]
UNRESOLVED_COLUMNS = ["brand", "cross_key", "quantity", "rows", "regions"]


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(loc) for loc in item["loc"]) or "row"
        parts.append(f"{field}: {item['msg']}")
    return "; ".join(parts)


def validate_demand(
    raw: pd.DataFrame, strip_chars: str = settings.STRIP_CHARS
) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Splits raw demand rows into valid rows and rejected (malformed) rows.

    A row is rejected when its part number is missing or normalizes to an
    empty key, its quantity is missing, non-numeric or negative, or its
    region is missing. Rejected rows are reported, never fatal.
    """
    missing = [col for col in REQUIRED_DEMAND_COLUMNS if col not in raw.columns]
    if missing:
        raise SchemaError(
            f"Demand table lacks required columns: {', '.join(missing)}",
            details={"columns": [str(c) for c in raw.columns]},
        )

    frame = raw.reindex(columns=DEMAND_COLUMNS).astype(object)
    frame = frame.where(frame.notna(), None)

    valid_rows: list[dict] = []
    rejected_rows: list[dict] = []
    for position, row in enumerate(frame.to_dict("records"), start=1):
        if row["record_id"] is None or not str(row["record_id"]).strip():
            row["record_id"] = str(position)
        try:
            record = DemandRow(**row)
        except ValidationError as e:
            rejected_rows.append(
                RejectedRow(
                    row_number=position,
                    record_id=str(row["record_id"]),
                    reason=_describe(e),
                ).model_dump()
            )
            continue
        if not normalize(record.part_number, strip_chars):
            rejected_rows.append(
                RejectedRow(
                    row_number=position,
                    record_id=record.record_id,
                    reason="part_number: normalizes to an empty key",
                ).model_dump()
            )
            continue
        valid_rows.append(record.model_dump())

    valid = pd.DataFrame(valid_rows, columns=DEMAND_COLUMNS)
    rejected = pd.DataFrame(rejected_rows, columns=list(RejectedRow.model_fields))

    logger.info(f"  > Demand rows read: {len(frame)} | valid: {len(valid)} | rejected: {len(rejected)}")
    if len(rejected):
        logger.warning(f"  > ⚠️  {len(rejected)} malformed demand rows excluded. See rejected rows report.")
    return valid, rejected


def attach_skus(
    demand: pd.DataFrame,
    mapping: pd.DataFrame,
    strip_chars: str = settings.STRIP_CHARS,
) -> pd.DataFrame:
    """
    Left-outer join of demand rows against the resolved mapping.

    Every input row comes out exactly once, in input order, with its
    canonical key and, when matched, the catalog brand and internal SKU.
    Unmatched rows carry a null SKU.
    """
    records = demand.reindex(columns=DEMAND_COLUMNS).copy()
    records["cross_key"] = normalize_series(records["part_number"], strip_chars)

    lookup = mapping[["cross_key", "brand", "sku"]].rename(columns={"brand": "matched_brand"})
    records = records.merge(lookup, on="cross_key", how="left", validate="many_to_one")
    records = records.astype(object).where(records.notna(), None)
    records = records[RECORD_COLUMNS]

    matched = records["sku"].notna().sum()
    logger.info(f"  > Attached SKUs: {matched} of {len(records)} demand rows matched.")
    return records


def match_stats(records: pd.DataFrame) -> dict:
    """Row and quantity match rates of a resolved demand relation."""
    matched_mask = records["sku"].notna()
    quantity = pd.to_numeric(records["quantity"], errors="coerce").fillna(0)
    total_qty = float(quantity.sum())
    matched_qty = float(quantity[matched_mask].sum())
    return {
        "rows": int(len(records)),
        "matched_rows": int(matched_mask.sum()),
        "unmatched_rows": int((~matched_mask).sum()),
        "total_quantity": total_qty,
        "matched_quantity": matched_qty,
        "quantity_match_rate": round(matched_qty / total_qty, 4) if total_qty else None,
    }


def unresolved_demand(records: pd.DataFrame) -> pd.DataFrame:
    """
    Gap analysis: demand with no internal SKU, grouped by reported brand and
    canonical key, largest quantity first.
    """
    gaps = records[records["sku"].isna()].copy()
    if gaps.empty:
        return pd.DataFrame(columns=UNRESOLVED_COLUMNS)

    gaps["brand"] = gaps["brand"].fillna("")
    gaps["quantity"] = pd.to_numeric(gaps["quantity"])
    summary = (
        gaps.groupby(["brand", "cross_key"])
        .agg(
            quantity=("quantity", "sum"),
            rows=("record_id", "size"),
            regions=("region", lambda s: ", ".join(sorted(set(s)))),
        )
        .reset_index()
    )
    summary = summary.sort_values(
        ["quantity", "brand", "cross_key"], ascending=[False, True, True], kind="mergesort"
    ).reset_index(drop=True)
    summary["brand"] = summary["brand"].where(summary["brand"] != "", None)
    return summary[UNRESOLVED_COLUMNS]
