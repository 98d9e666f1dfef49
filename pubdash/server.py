"""ASGI entry point: the JSON service with the Shiny dashboard mounted at ``/``.

Run with::

    uvicorn pubdash.server:app --host 0.0.0.0 --port 8000
"""

import logging
from pathlib import Path

from shiny.express import wrap_express_app

from .api import create_api
from .config import LOG_LEVEL

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

DASHBOARD_APP: Path = Path(__file__).resolve().parent.parent / "app.py"

app = create_api()
# Mounted last so /api/* routes take precedence over the dashboard
app.mount("/", wrap_express_app(DASHBOARD_APP), name="dashboard")
