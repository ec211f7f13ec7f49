"""
Benchmark KPIs comparing market demand with internal sales.

All values are computed on request from the current aggregate and the
current sales figures. Undefined values are returned as None (reported as
N/A) instead of raising on a zero denominator.
"""

import logging
import math
from typing import Iterable, Mapping, Optional

import pandas as pd

from . import settings

logger = logging.getLogger(__name__)

KPI_COLUMNS = [
    "sku",
    "scope",
    "demand",
    "sales",
    "lost_opportunity_pct",
    "penetration_rate",
    "fill_rate_proxy",
]


def _missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def lost_opportunity_pct(demand: Optional[float], sales: Optional[float]) -> Optional[float]:
    """(demand - sales) / demand x 100. None when demand is 0 or unknown."""
    if _missing(demand) or _missing(sales) or demand == 0:
        return None
    return (demand - sales) * 100 / demand


def penetration_rate(sales: Optional[float], demand: Optional[float]) -> Optional[float]:
    """sales / demand. None when demand is 0 or unknown."""
    if _missing(demand) or _missing(sales) or demand == 0:
        return None
    return sales / demand


def fill_rate_proxy(sales: Optional[float], demand: Optional[float]) -> Optional[float]:
    """
    Share of demand covered by sales, in percent, capped at 100.
    Sales against zero demand count as fully filled; None when both are 0.
    """
    if _missing(demand) or _missing(sales):
        return None
    if demand == 0:
        return None if sales == 0 else 100.0
    return min(sales / demand, 1.0) * 100


def catalog_coverage_ratio(
    demand_by_sku: Mapping[str, float],
    sales_by_sku: Mapping[str, float],
    universe: Optional[Iterable[str]] = None,
) -> Optional[float]:
    """
    |{SKU : sales > 0}| / |{SKU : demand > 0}| over a SKU universe (default:
    every SKU with demand). None when no SKU in the universe has demand.
    """
    skus = set(universe) if universe is not None else set(demand_by_sku)
    with_demand = [sku for sku in skus if (demand_by_sku.get(sku) or 0) > 0]
    if not with_demand:
        return None
    with_sales = [sku for sku in skus if (sales_by_sku.get(sku) or 0) > 0]
    return len(with_sales) / len(with_demand)


def portfolio_penetration_rate(
    demand_by_sku: Mapping[str, float],
    sales_by_sku: Mapping[str, float],
    offered_skus: Optional[Iterable[str]] = None,
) -> Optional[float]:
    """Total sales / total demand over the SKUs the supplier offers."""
    skus = set(offered_skus) if offered_skus is not None else set(demand_by_sku)
    demand = sum(demand_by_sku.get(sku) or 0 for sku in skus)
    sales = sum(sales_by_sku.get(sku) or 0 for sku in skus)
    return penetration_rate(float(sales), float(demand))


def sales_lookup(sales: pd.DataFrame) -> dict[tuple[str, str], float]:
    """(sku, region) -> summed sales quantity."""
    if sales.empty:
        return {}
    grouped = sales.groupby(["sku", "region"])["sales"].sum()
    return {key: float(value) for key, value in grouped.items()}


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 4)


def build_kpi_report(
    aggregates: pd.DataFrame,
    sales: pd.DataFrame,
    region_columns: Mapping[str, str] = settings.REGION_COLUMNS,
    total_scope: str = settings.TOTAL_SCOPE,
) -> pd.DataFrame:
    """
    Long-format KPI relation: for every aggregated SKU, one row per
    configured region and one `total_scope` row.

    Sales missing for a (sku, region) count as 0. A region with no reported
    demand keeps demand None, and its KPIs are None.
    """
    by_key = sales_lookup(sales)
    sales_totals: dict[str, float] = {}
    for (sku, _region), value in by_key.items():
        sales_totals[sku] = sales_totals.get(sku, 0.0) + value

    rows = []
    for agg in aggregates.to_dict("records"):
        sku = agg["sku"]
        scopes = [(label, agg.get(column), by_key.get((sku, label), 0.0)) for label, column in region_columns.items()]
        scopes.append((total_scope, agg["total"], sales_totals.get(sku, 0.0)))
        for scope, demand, sold in scopes:
            demand = None if _missing(demand) else float(demand)
            rows.append(
                {
                    "sku": sku,
                    "scope": scope,
                    "demand": demand,
                    "sales": sold,
                    "lost_opportunity_pct": _round(lost_opportunity_pct(demand, sold)),
                    "penetration_rate": _round(penetration_rate(sold, demand)),
                    "fill_rate_proxy": _round(fill_rate_proxy(sold, demand)),
                }
            )

    report = pd.DataFrame(rows, columns=KPI_COLUMNS)
    logger.info(f"  > KPI report: {len(report)} rows for {len(aggregates)} SKUs.")
    return report


def kpi_summary(
    aggregates: pd.DataFrame,
    sales: pd.DataFrame,
    offered_skus: Optional[Iterable[str]] = None,
) -> dict:
    """
    Portfolio-level coverage and penetration over `offered_skus`, or over
    the aggregated SKUs when no universe is given.
    """
    demand_by_sku = {row["sku"]: float(row["total"]) for row in aggregates.to_dict("records")}
    sales_by_sku: dict[str, float] = {}
    for (sku, _region), value in sales_lookup(sales).items():
        sales_by_sku[sku] = sales_by_sku.get(sku, 0.0) + value

    offered = set(offered_skus) if offered_skus is not None else None
    coverage = catalog_coverage_ratio(demand_by_sku, sales_by_sku, universe=offered)
    penetration = portfolio_penetration_rate(demand_by_sku, sales_by_sku, offered_skus=offered)
    return {
        "catalog_coverage_ratio": _round(coverage),
        "portfolio_penetration_rate": _round(penetration),
        "skus_with_demand": sum(1 for v in demand_by_sku.values() if v > 0),
        "skus_with_sales": sum(1 for v in sales_by_sku.values() if v > 0),
    }
