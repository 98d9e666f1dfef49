"""
Reads the publication CSV from object storage and turns it into rows.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import boto3
import pandas as pd
import requests

from .config import AWS_REGION, HTTP_TIMEOUT, PUBLICATIONS_SOURCE, UPSTREAM_ERROR_MESSAGE

logger = logging.getLogger(__name__)


class DataSourceError(RuntimeError):
    """The CSV object could not be fetched or parsed."""


def split_s3_uri(uri: str) -> Tuple[str, str]:
    """``s3://bucket/path/key.csv`` -> ``("bucket", "path/key.csv")``."""
    parsed = urlparse(uri)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if parsed.scheme != "s3" or not bucket or not key:
        raise ValueError(f"Not an s3 object URI: {uri!r}")
    return bucket, key


def _read_s3_object(uri: str, s3_client: Any = None) -> bytes:
    bucket, key = split_s3_uri(uri)
    client = s3_client or boto3.client("s3", region_name=AWS_REGION)
    response = client.get_object(Bucket=bucket, Key=key)
    body = response.get("Body")
    if body is None:
        raise DataSourceError(f"No data returned for s3://{bucket}/{key}")
    return body.read()


def fetch_csv_text(source: str | Path, s3_client: Any = None) -> str:
    """Return the CSV text behind ``source`` (s3 URI, http URL or local path)."""
    source_str = str(source)
    if source_str.startswith("s3://"):
        raw = _read_s3_object(source_str, s3_client)
    elif source_str.lower().startswith(("http://", "https://")):
        response = requests.get(source_str, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
        raw = response.content
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"CSV not found at {path}")
        raw = path.read_bytes()

    # utf-8-sig drops a leading byte-order mark written by spreadsheet exports
    return raw.decode("utf-8-sig")


def parse_csv_text(text: str) -> List[Dict[str, Optional[str]]]:
    """Parse CSV text into row dicts in file order.

    Every value is kept as a string; blank cells become ``None`` and empty
    lines are skipped.
    """
    df = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    df.columns = [str(col) for col in df.columns]
    rows = df.to_dict(orient="records")
    return [
        {col: (val if val != "" else None) for col, val in row.items()}
        for row in rows
    ]


def load_publication_rows(
    source: str | Path | None = None, s3_client: Any = None
) -> List[Dict[str, Optional[str]]]:
    """Fetch and parse the publication CSV.

    Any failure is logged and surfaced as :class:`DataSourceError`; there is
    no retry and no partial result.
    """
    source = source or PUBLICATIONS_SOURCE
    logger.info("Fetching publication CSV from %s", source)
    try:
        text = fetch_csv_text(source, s3_client=s3_client)
        if not text.strip():
            raise DataSourceError(f"Empty CSV object at {source}")
        rows = parse_csv_text(text)
    except Exception as exc:
        logger.error("Error fetching CSV from %s: %s", source, exc)
        raise DataSourceError(UPSTREAM_ERROR_MESSAGE) from exc

    logger.info("Parsed %d publication rows", len(rows))
    return rows
