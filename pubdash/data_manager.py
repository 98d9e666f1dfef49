"""Page data lifecycle.

Every dashboard page owns its own copy of the publication records.  This
module wraps the fetch in the same loading / error bookkeeping for all
pages: the loading flag is cleared whatever happens, and a failed fetch
is logged and leaves the page with no data rather than raising into the
UI.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .client import fetch_publication_data
from .records import Publication

logger = logging.getLogger(__name__)


@dataclass
class PageData:
    records: List[Publication] = field(default_factory=list)
    loading: bool = True
    error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.records


def load_page_data(
    fetch: Callable[[], List[Publication]] = fetch_publication_data,
) -> PageData:
    """
    Run one fetch for a page and return its settled state.

    Parameters
    ----------
    fetch : callable, optional
        Zero-argument loader; defaults to :func:`fetch_publication_data`.

    Returns
    -------
    PageData
        ``loading`` is always ``False`` on return.  On failure ``records``
        is empty and ``error`` holds the message.
    """
    page = PageData()
    try:
        page.records = list(fetch())
        logger.info("Loaded %d publications", len(page.records))
    except Exception as exc:
        logger.error("Failed to load data: %s", exc)
        page.error = str(exc)
    finally:
        page.loading = False
    return page
