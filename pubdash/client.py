"""
Client side of the JSON service: fetches rows and returns typed records.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import requests

from .config import API_BASE_URL, CLIENT_ERROR_MESSAGE, CSV_ENDPOINT, HTTP_TIMEOUT
from .records import Publication, records_from_rows

logger = logging.getLogger(__name__)


class PublicationFetchError(RuntimeError):
    """The dashboard could not load publication rows from the service."""


def fetch_publication_data(
    base_url: Optional[str] = None, session: Optional[Any] = None
) -> List[Publication]:
    """GET the publication rows from the JSON service.

    Parameters
    ----------
    base_url : str, optional
        Service root; defaults to ``PUBLICATIONS_API_URL``.
    session : requests.Session, optional
        Anything with a ``get`` method; defaults to the ``requests`` module.

    Returns
    -------
    List[Publication]
        One record per row, in service order.

    Raises
    ------
    PublicationFetchError
        On a non-200 response, a transport error or a body that is not a
        JSON array of objects.
    """
    url = (base_url or API_BASE_URL).rstrip("/") + CSV_ENDPOINT
    http = session or requests
    try:
        response = http.get(url, timeout=HTTP_TIMEOUT)
        if response.status_code != 200:
            raise PublicationFetchError(
                f"API responded with status: {response.status_code}"
            )
        data = response.json()
        if not isinstance(data, list):
            raise PublicationFetchError(
                f"Expected a JSON array, got {type(data).__name__}"
            )
        for index, row in enumerate(data):
            if not isinstance(row, Mapping):
                raise PublicationFetchError(
                    f"Row {index} is {type(row).__name__}, not a JSON object"
                )
        records = records_from_rows(data)
    except Exception as exc:
        logger.error("Error fetching publication data from %s: %s", url, exc)
        raise PublicationFetchError(CLIENT_ERROR_MESSAGE) from exc

    return records
