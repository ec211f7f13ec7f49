import logging
from abc import ABC, abstractmethod
from typing import Any, Optional
import pandas as pd
from pydantic import BaseModel, ValidationError

from xref_demand import data_handler

logger = logging.getLogger(__name__)


def frame_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """DataFrame rows as plain dicts with string keys and None for missing cells."""
    cleaned = df.astype(object).where(df.notna(), None)
    return [{str(k): v for k, v in rec.items()} for rec in cleaned.to_dict("records")]


class DataPipeline(ABC):
    """
    Abstract base class for the batch pipelines (cross-reference, benchmark).
    Follows an Extract -> Transform -> Load (ETL) pattern.

    Nothing is published unless every output relation was built and
    validated, so readers never see a half-updated set of files.
    """

    def __init__(self, report_type: str, test_mode: bool = False):
        self.report_type = report_type
        self.test_mode = test_mode
        # Counts collected by the stages, logged and posted after the run
        self.stats: dict[str, Any] = {}
        self.validated: dict[str, list[BaseModel]] = {}

    def run(self) -> Optional[dict[str, pd.DataFrame]]:
        """
        Orchestrates the pipeline execution. Returns the published relations,
        or None when validation failed and nothing was published.
        """
        logger.info(f"🚀 STEP: {self.report_type.upper()} REPORT")
        logger.info("-" * 30)

        # --- 0. CONFIGURATION ---
        self.check_config()

        # --- 1. EXTRACT ---
        raw_data = self.extract()

        # --- 2. TRANSFORM ---
        relations = self.transform(raw_data)
        if relations is None:
            logger.error(f"❌ Transformation failed for {self.report_type}. Nothing published.")
            return None

        # --- 3. LOAD ---
        self.load(relations)

        logger.info(f"✅ {self.report_type.capitalize()} Pipeline Finished.\n")
        logger.info("=" * 60)
        return relations

    def check_config(self):
        """Raises ConfigurationError before any work when the run cannot be valid."""

    @abstractmethod
    def extract(self) -> dict[str, pd.DataFrame]:
        """
        Responsible for finding and parsing the input files.
        Missing required inputs raise InputFileError.
        """
        pass

    @abstractmethod
    def transform(self, data: dict[str, pd.DataFrame]) -> dict[str, pd.DataFrame] | None:
        """
        Builds every output relation in memory and validates it.
        Returns None when validation fails.
        """
        pass

    def validate_relation(self, name: str, model: type[BaseModel], rows: list[dict]) -> bool:
        """Validates rows against a schema and keeps the models for JSON export."""
        try:
            self.validated[name] = [model(**row) for row in rows]
        except ValidationError as e:
            logger.error(f"❌ Data validation failed for '{name}'!")
            logger.error(e)
            return False
        logger.info(f"✅ Data validation successful for '{name}' ({len(rows)} records).")
        return True

    def load(self, relations: dict[str, pd.DataFrame]):
        """
        Saves data to disk and posts the run summary to the webhook.
        """
        # 1. Print Run Summary
        logger.info("\n--- Final Run Summary ---")
        for key, value in self.stats.items():
            logger.info(f"{key}: {value if value is not None else 'N/A'}")

        # 2. Save Outputs (CSV/JSON)
        data_handler.save_outputs(relations, self.validated)

        # 3. Post to Webhook
        if not self.test_mode:
            data_handler.post_to_webhook(summary=self.stats, report_type=self.report_type)
        else:
            logger.info("🧪 Test Mode: Skipping webhook post.")
