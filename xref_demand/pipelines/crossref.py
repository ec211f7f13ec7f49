import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from xref_demand import parsers, settings, utils
from xref_demand.crossref import flatten_catalog, resolve_conflicts
from xref_demand.errors import ConfigurationError, InputFileError
from xref_demand.pipeline import DataPipeline, frame_records
from xref_demand.schemas import ConflictRecord, ResolvedEntry

logger = logging.getLogger(__name__)


class CrossReferencePipeline(DataPipeline):
    """
    Wide equivalence catalog -> resolved mapping (one SKU per canonical key)
    plus the conflicts report for catalog curation.
    """

    def __init__(
        self,
        catalog_path: Optional[Path] = None,
        brand_columns: Optional[list[tuple[str, str]]] = None,
        brand_priority: Optional[list[str]] = None,
        strip_chars: Optional[str] = None,
        test_mode: bool = False,
    ):
        super().__init__("crossref", test_mode=test_mode)
        self.catalog_path = catalog_path
        self.brand_columns = list(brand_columns if brand_columns is not None else settings.BRAND_COLUMNS)
        self.brand_priority = list(brand_priority if brand_priority is not None else settings.BRAND_PRIORITY)
        self.strip_chars = strip_chars if strip_chars is not None else settings.STRIP_CHARS

    def check_config(self):
        if not self.brand_columns:
            raise ConfigurationError("Brand column list is empty.")
        columns = [column for column, _ in self.brand_columns]
        if len(set(columns)) != len(columns):
            raise ConfigurationError("Brand columns must be unique.", details={"columns": columns})
        if any(not str(label).strip() for _, label in self.brand_columns):
            raise ConfigurationError("Brand labels must not be blank.")

    def extract(self) -> dict[str, pd.DataFrame]:
        logger.info("--- Loading Equivalence Catalog ---")
        path = self.catalog_path
        if path is None:
            found = utils.find_latest_report(settings.INPUT_DIR, settings.CATALOG_FILENAME_PREFIX)
            if not found:
                raise InputFileError(
                    f"No catalog file '{settings.CATALOG_FILENAME_PREFIX}*' in {settings.INPUT_DIR}"
                )
            path, file_date = found
            logger.info(f"  > Found: {path.name} (File Date: {file_date})")
            self.stats["catalog_date"] = file_date.isoformat()
        self.stats["catalog_file"] = path.name
        return {"catalog": parsers.parse_catalog(path)}

    def transform(self, data: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame] | None:
        logger.info("\n--- Flattening Catalog ---")
        entries = flatten_catalog(
            data["catalog"],
            brand_columns=self.brand_columns,
            sku_column=settings.SKU_COLUMN,
            strip_chars=self.strip_chars,
        )

        logger.info("\n--- Resolving Ambiguous Keys ---")
        mapping, conflicts = resolve_conflicts(entries, brand_priority=self.brand_priority)

        self.stats.update(
            {
                "catalog_rows": int(len(data["catalog"])),
                "cross_entries": int(len(entries)),
                "resolved_keys": int(len(mapping)),
                "ambiguous_keys": int(conflicts["cross_key"].nunique()),
                "sku_conflict_keys": int(
                    conflicts.loc[conflicts["conflict_type"] == "sku_conflict", "cross_key"].nunique()
                ),
            }
        )

        if not self.validate_relation("resolved_mapping", ResolvedEntry, frame_records(mapping)):
            return None
        if not self.validate_relation("cross_conflicts", ConflictRecord, frame_records(conflicts)):
            return None

        return {"resolved_mapping": mapping, "cross_conflicts": conflicts}
