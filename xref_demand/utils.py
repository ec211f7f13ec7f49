import logging
import re
from datetime import date, datetime
from pathlib import Path
import pandas as pd

logger = logging.getLogger(__name__)

TABLE_SUFFIXES = (".csv", ".xlsx")
_FILE_DATE = re.compile(r"(\d{4}-\d{2}-\d{2})")
# Cells stay text; only an empty cell is absent ("NA" is a region and "N/A" a part number).
_TEXT_CELLS = {"dtype": str, "keep_default_na": False, "na_values": [""]}


def get_date_suffix_for_filename() -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return datetime.now().strftime("%Y-%m-%d")


def _date_from_name(path: Path, prefix: str) -> date | None:
    match = _FILE_DATE.search(path.stem[len(prefix):])
    if not match:
        return None
    try:
        return datetime.strptime(match.group(1), "%Y-%m-%d").date()
    except ValueError:
        return None


def find_latest_report(directory: Path, prefix: str) -> tuple[Path, date] | None:
    """
    Finds the newest table in `directory` whose name starts with `prefix`.
    The date embedded in the name ('<prefix>YYYY-MM-DD.csv') decides; files
    without one fall back to their modification date.
    """
    if not directory.exists():
        return None

    candidates = []
    for path in directory.iterdir():
        if not path.is_file() or not path.name.startswith(prefix):
            continue
        if path.suffix.lower() not in TABLE_SUFFIXES:
            continue
        file_date = _date_from_name(path, prefix)
        if file_date is None:
            file_date = datetime.fromtimestamp(path.stat().st_mtime).date()
        candidates.append((file_date, path.name, path))

    if not candidates:
        return None
    file_date, _, path = max(candidates)
    return path, file_date


def load_csv(file_path: Path, skiprows: int = 0) -> pd.DataFrame | None:
    """
    A more robust CSV loader with a multi-stage encoding fallback.
    It will attempt to read a file in the following order:
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1 - A permissive fallback that never fails but might misinterpret characters.
    Every column is read as text so part numbers keep their leading zeros.
    """
    try:
        return pd.read_csv(file_path, encoding="utf-8-sig", skiprows=skiprows, **_TEXT_CELLS)

    except UnicodeDecodeError:
        logger.info(f"INFO: UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'.")
        try:
            return pd.read_csv(file_path, encoding="latin-1", skiprows=skiprows, **_TEXT_CELLS)
        except (OSError, ValueError) as e_latin1:
            logger.error(f"ERROR: Could not read {file_path.name} even with latin-1. Reason: {e_latin1}")
            return None

    except FileNotFoundError:
        logger.info(f"INFO: Report not found at {file_path}, skipping.")
        return None

    except (OSError, ValueError) as e_general:
        # pandas parser errors subclass ValueError.
        logger.error(f"ERROR: An unexpected error occurred while reading {file_path.name}. Reason: {e_general}")
        return None


def load_table(file_path: Path) -> pd.DataFrame | None:
    """Loads a CSV or Excel (first sheet) table with all cells as text."""
    if file_path.suffix.lower() == ".csv":
        return load_csv(file_path)
    try:
        return pd.read_excel(file_path, **_TEXT_CELLS)
    except FileNotFoundError:
        logger.info(f"INFO: Report not found at {file_path}, skipping.")
        return None
    except (OSError, ValueError) as e:
        logger.error(f"ERROR: Could not read {file_path.name}. Reason: {e}")
        return None


def clean_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Strips whitespace around column names."""
    return df.rename(columns=lambda c: str(c).strip())
