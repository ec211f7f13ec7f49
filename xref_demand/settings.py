import os
from pathlib import Path
from dotenv import load_dotenv

# --- Base Directory ---
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Load Environment Variables ---
load_dotenv(BASE_DIR / ".env")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


# --- Path Configuration ---
# Use Path objects for robust, OS-agnostic path handling.
INPUT_DIR = BASE_DIR / os.getenv("INPUT_DIR", "input")
OUTPUT_DIR = BASE_DIR / os.getenv("OUTPUT_DIR", "output")

# --- Filename Configuration ---
CATALOG_FILENAME_PREFIX = os.getenv("CATALOG_FILENAME_PREFIX", "cross_catalog_")
DEMAND_FILENAME_PREFIX = os.getenv("DEMAND_FILENAME_PREFIX", "market_demand_")
SALES_FILENAME_PREFIX = os.getenv("SALES_FILENAME_PREFIX", "internal_sales_")

# --- Output Switches ---
SAVE_JSON_OUTPUT = _env_flag("SAVE_JSON_OUTPUT")
KEEP_SNAPSHOTS = _env_flag("KEEP_SNAPSHOTS")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = BASE_DIR / os.getenv("LOG_FILE", "logs/xref_demand.log")

# --- Webhook ---
WEBHOOK_URL = os.getenv("WEBHOOK_URL")

# --- Key Normalization ---
# Characters removed from every part number before matching. Fixed for a run.
STRIP_CHARS = os.getenv("STRIP_CHARS", "-. /")

# --- Conflict Resolution ---
# Brands listed here win ambiguous keys in this order. Unlisted brands follow,
# in lexical order. Empty means plain lexical brand order.
BRAND_PRIORITY = _env_list("BRAND_PRIORITY")

# --- Wide Catalog Layout ---
SKU_COLUMN = os.getenv("SKU_COLUMN", "SusCatalog")

# (column in the wide catalog, canonical brand label)
BRAND_COLUMNS = [
    ("OEM", "OEM"),
    ("OEMCond", "OEMCond"),
    ("Moog", "Moog"),
    ("MAS", "MAS"),
    ("Delphi", "Delphi"),
    ("TRW", "TRW"),
    ("Mevotech", "Mevotech"),
    ("Dorman", "Dorman"),
    ("ACDelco", "ACDelco"),
    ("Motorcraft", "Motorcraft"),
    ("Monroe", "Monroe"),
    ("KYB", "KYB"),
    ("Gabriel", "Gabriel"),
    ("Sankei555", "555"),
    ("CTR", "CTR"),
    ("Lemforder", "Lemforder"),
    ("Febi", "Febi"),
    ("Beck_Arnley", "Beck Arnley"),
    ("Raybestos", "Raybestos"),
    ("Syd", "Syd"),
    ("Rare", "Rare Parts"),
    ("Japan_Parts", "Japan Parts"),
]

# --- Regions ---
# Region label as reported in demand data -> subtotal column in the aggregate.
REGION_COLUMNS = {
    "North America": "north_america",
    "Mexico": "mexico",
    "Puerto Rico": "puerto_rico",
    "Europe": "europe",
    "Africa": "africa",
    "Central America": "central_america",
    "South America": "south_america",
    "Middle East": "middle_east",
}

# Scope label used for the all-regions row of the KPI report.
TOTAL_SCOPE = "Total"
