import logging
from pathlib import Path
from typing import Iterable, Mapping, Optional

import pandas as pd

from xref_demand import kpis, parsers, settings, utils
from xref_demand.aggregator import aggregate_demand, validate_regions
from xref_demand.demand import attach_skus, match_stats, unresolved_demand, validate_demand
from xref_demand.errors import InputFileError
from xref_demand.pipeline import DataPipeline, frame_records
from xref_demand.schemas import (
    DemandRecord,
    KpiRecord,
    RegionalAggregate,
    RejectedRow,
    UnresolvedDemand,
)

logger = logging.getLogger(__name__)

MAPPING_FILENAME = "resolved_mapping.csv"


class BenchmarkPipeline(DataPipeline):
    """
    Retailer demand + resolved mapping (+ internal sales) -> resolved demand
    records, regional aggregate with ranks, gap report and KPI report.
    """

    def __init__(
        self,
        demand_path: Optional[Path] = None,
        sales_path: Optional[Path] = None,
        mapping: Optional[pd.DataFrame] = None,
        mapping_path: Optional[Path] = None,
        region_columns: Optional[Mapping[str, str]] = None,
        strip_chars: Optional[str] = None,
        offered_skus: Optional[Iterable[str]] = None,
        test_mode: bool = False,
    ):
        super().__init__("benchmark", test_mode=test_mode)
        self.demand_path = demand_path
        self.sales_path = sales_path
        self.mapping = mapping
        self.mapping_path = mapping_path
        self.region_columns = dict(region_columns if region_columns is not None else settings.REGION_COLUMNS)
        self.strip_chars = strip_chars if strip_chars is not None else settings.STRIP_CHARS
        self.offered_skus = offered_skus

    def check_config(self):
        validate_regions(self.region_columns)

    def _locate(self, prefix: str, label: str) -> Optional[Path]:
        found = utils.find_latest_report(settings.INPUT_DIR, prefix)
        if not found:
            return None
        path, file_date = found
        logger.info(f"  > Found {label}: {path.name} (File Date: {file_date})")
        self.stats[f"{label}_date"] = file_date.isoformat()
        return path

    def extract(self) -> dict[str, pd.DataFrame]:
        logger.info("--- Loading Demand, Mapping and Sales ---")

        demand_path = self.demand_path or self._locate(settings.DEMAND_FILENAME_PREFIX, "demand")
        if demand_path is None:
            raise InputFileError(
                f"No demand file '{settings.DEMAND_FILENAME_PREFIX}*' in {settings.INPUT_DIR}"
            )
        self.stats["demand_file"] = demand_path.name
        data = {"demand": parsers.parse_demand(demand_path)}

        if self.mapping is not None:
            logger.info(f"  > Using resolved mapping from this run ({len(self.mapping)} keys).")
            data["mapping"] = self.mapping
        else:
            mapping_path = self.mapping_path or settings.OUTPUT_DIR / MAPPING_FILENAME
            if not mapping_path.exists():
                raise InputFileError(
                    f"Resolved mapping not found at {mapping_path}. Run the crossref pipeline first."
                )
            data["mapping"] = parsers.parse_mapping(mapping_path)
            logger.info(f"  > Loaded resolved mapping: {mapping_path.name} ({len(data['mapping'])} keys).")

        sales_path = self.sales_path or self._locate(settings.SALES_FILENAME_PREFIX, "sales")
        if sales_path is None:
            logger.warning("  > ⚠️  No sales file found. KPI report will be skipped.")
        else:
            data["sales"] = parsers.parse_sales(sales_path)
        return data

    def transform(self, data: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame] | None:
        logger.info("\n--- Validating Demand Rows ---")
        valid, rejected = validate_demand(data["demand"], self.strip_chars)

        logger.info("\n--- Attaching Internal SKUs ---")
        records = attach_skus(valid, data["mapping"], self.strip_chars)
        self.stats.update(match_stats(records))
        self.stats["rejected_rows"] = int(len(rejected))

        logger.info("\n--- Aggregating by Region ---")
        aggregates = aggregate_demand(records, self.region_columns)
        gaps = unresolved_demand(records)
        self.stats["aggregated_skus"] = int(len(aggregates))
        self.stats["unresolved_keys"] = int(len(gaps))

        relations = {
            "demand_records": records,
            "rejected_demand": rejected,
            "regional_aggregate": aggregates,
            "unresolved_demand": gaps,
        }

        if "sales" in data:
            logger.info("\n--- Computing KPIs ---")
            relations["kpi_report"] = kpis.build_kpi_report(
                aggregates, data["sales"], self.region_columns, settings.TOTAL_SCOPE
            )
            # The supplier offers every SKU the catalog cross-references.
            offered = set(self.offered_skus) if self.offered_skus is not None else set(data["mapping"]["sku"].dropna())
            self.stats["offered_skus"] = len(offered)
            self.stats.update(kpis.kpi_summary(aggregates, data["sales"], offered))

        subtotal_columns = list(self.region_columns.values())
        aggregate_rows = [
            {
                "sku": row["sku"],
                "subtotals": {col: row[col] for col in subtotal_columns},
                "total": row["total"],
                "rank": row["rank"],
            }
            for row in frame_records(aggregates)
        ]

        checks = [
            ("demand_records", DemandRecord, frame_records(records)),
            ("rejected_demand", RejectedRow, frame_records(rejected)),
            ("regional_aggregate", RegionalAggregate, aggregate_rows),
            ("unresolved_demand", UnresolvedDemand, frame_records(gaps)),
        ]
        if "kpi_report" in relations:
            checks.append(("kpi_report", KpiRecord, frame_records(relations["kpi_report"])))
        for name, model, rows in checks:
            if not self.validate_relation(name, model, rows):
                return None

        return relations
