import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import pandas as pd
import requests
from pydantic import BaseModel

from . import settings
from . import utils

logger = logging.getLogger(__name__)


def _staging_path(target: Path) -> Path:
    return target.with_name(f".{target.name}.staging")


def _stage_csv(df: pd.DataFrame, target: Path) -> Path:
    staged = _staging_path(target)
    df.to_csv(staged, index=False, lineterminator="\n")
    return staged


def _stage_json(models: list[BaseModel], target: Path) -> Path:
    staged = _staging_path(target)
    with open(staged, "w", encoding="utf-8") as f:
        json.dump([item.model_dump(mode="json") for item in models], f, indent=2)
    return staged


def save_outputs(
    relations: dict[str, pd.DataFrame],
    validated: Optional[dict[str, list[BaseModel]]] = None,
    output_dir: Optional[Path] = None,
) -> dict[str, Path]:
    """
    Publishes every relation as `<name>.csv` with drop-and-replace semantics.

    All files are first written to hidden staging files; only when every one
    was written are they swapped into place with `os.replace`. A failure while
    staging publishes nothing and leaves the previous versions untouched.
    """
    output_dir = output_dir or settings.OUTPUT_DIR
    output_dir.mkdir(parents=True, exist_ok=True)
    date_suffix = utils.get_date_suffix_for_filename()

    staged: list[tuple[Path, Path]] = []
    try:
        for name, df in relations.items():
            target = output_dir / f"{name}.csv"
            staged.append((_stage_csv(df, target), target))
            if settings.KEEP_SNAPSHOTS:
                snapshot = output_dir / f"{name}_{date_suffix}.csv"
                staged.append((_stage_csv(df, snapshot), snapshot))

        if settings.SAVE_JSON_OUTPUT and validated:
            for name, models in validated.items():
                target = output_dir / f"{name}.json"
                staged.append((_stage_json(models, target), target))
    except Exception:
        for staged_path, _ in staged:
            staged_path.unlink(missing_ok=True)
        logger.error("❌ Writing outputs failed. Previous versions left in place.")
        raise

    published = {}
    for staged_path, target in staged:
        os.replace(staged_path, target)
        published[target.name] = target
        logger.info(f"✅ Saved: {target}")

    if not settings.SAVE_JSON_OUTPUT:
        logger.info("INFO: Skipping JSON file save as per configuration.")
    return published


def post_to_webhook(summary: dict[str, Any], report_type: str) -> bool:
    """
    Posts the run summary to the webhook. Failures are logged, not raised:
    the outputs are already published by the time this runs.
    """
    if not settings.WEBHOOK_URL:
        logger.warning("⚠️ WEBHOOK_URL not set. Skipping webhook post.")
        return False

    logger.info(f"🚀 Posting {report_type} summary to webhook.")
    payload = {"reportType": report_type, "summary": summary}

    try:
        response = requests.post(settings.WEBHOOK_URL, json=payload, timeout=15)
        response.raise_for_status()
        logger.info("✅ Summary successfully posted to webhook.")
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"❌ Error posting to webhook: {e}")
        return False
