"""
Configuration constants for the publications dashboard.
"""

import os
from typing import Dict, List, Literal, Tuple

# ======================================================
#  DATA SOURCES / CONSTANTS
# ======================================================
# CSV object holding the publication metadata.  Accepts an s3:// URI,
# an http(s):// URL or a local path.
PUBLICATIONS_SOURCE: str = os.getenv(
    "PUBLICATIONS_SOURCE", "s3://sdp-dev-publications/data.csv"
)
AWS_REGION: str = os.getenv("AWS_REGION", "eu-west-2")

# Base URL of the JSON service the dashboard pages read from
API_BASE_URL: str = os.getenv("PUBLICATIONS_API_URL", "http://127.0.0.1:8000")
CSV_ENDPOINT: str = "/api/dashboard/csv"
HEALTH_ENDPOINT: str = "/api/health"

HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

UPSTREAM_ERROR_MESSAGE: str = "Failed to fetch CSV data"
CLIENT_ERROR_MESSAGE: str = "Failed to fetch publication data"

NO_CACHE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# ======================================================
#  CSV SCHEMA
# ======================================================
# Record field -> CSV column.  Order is the display order of the columns.
CSV_COLUMNS: Dict[str, str] = {
    "title": "Publication Title",
    "directorate": "Directorate",
    "division": "Division",
    "dd": "DD",
    "ba_lead": "BA Lead",
    "frequency": "Frequency",
    "output_type": "Output type",
    "alignment": "PO2 alignment (FY25/26)",
    "publish_dates": "publish_dates",
}

# The alignment header carries a financial-year suffix that changes over time
ALIGNMENT_COLUMN_PREFIX: str = "PO2 alignment"

DATE_SEPARATOR: str = ";"
UNKNOWN: str = "Unknown"
OTHER: str = "Other"

# ======================================================
#  PALETTES
# ======================================================
CHART_COLORS: List[str] = [
    "#2563eb",
    "#e11d48",
    "#16a34a",
    "#f59e0b",
    "#7c3aed",
    "#0891b2",
    "#db2777",
    "#65a30d",
]

ALIGNMENT_COLORS: Dict[str, str] = {
    "Employment": "#2563eb",
    "GDP": "#e11d48",
    "GDP & Employment": "#16a34a",
    "Population": "#f59e0b",
    "Prices": "#7c3aed",
    "Other": "#0891b2",
    "Unknown": "#94a3b8",
}

HEATMAP_COLORSCALE: List[Tuple[float, str]] = [
    (0.0, "#fff7ed"),
    (1.0, "#c2410c"),
]

# ======================================================
#  TIMELINE DEFAULTS
# ======================================================
Granularity = Literal["day", "week", "month"]

TIMELINE_WINDOW_DAYS: int = 365
DEFAULT_GRANULARITY: Granularity = "day"
DEFAULT_SORT_ASCENDING: bool = False  # newest first

GRANULARITY_OPTIONS: List[Tuple[str, str]] = [
    ("Daily", "day"),
    ("Weekly", "week"),
    ("Monthly", "month"),
]

# ======================================================
#  TREE MAP VIEWPORT
# ======================================================
MIN_SCALE: float = 0.5
MAX_SCALE: float = 5.0
ZOOM_OUT_FACTOR: float = 0.9
ZOOM_IN_FACTOR: float = 1.1
PAN_STEP: float = 50.0
