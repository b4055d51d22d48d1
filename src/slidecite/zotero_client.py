"""Zotero Web API (v3) client."""
import logging
from typing import Any, Dict, List, Optional

import requests

from .config import Config
from .models import CitationRecord
from .utils.api_utils import handle_api_response, retry
from .utils.error_handling import ZoteroAPIError
from .utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

ZOTERO_API_VERSION = "3"

# Zotero asks clients to stay well below a few requests per second
ZOTERO_MAX_CALLS = 5
ZOTERO_PERIOD = 1.0


class ZoteroLibrary:
    """
    Read access to one Zotero user or group library.

    Credentials default to the configured values, so ``ZoteroLibrary()``
    works once ``ZOTERO_API_KEY`` and ``ZOTERO_USER_ID`` are set.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        library_id: Optional[str] = None,
        library_type: Optional[str] = None,
        base_url: Optional[str] = None,
        search_limit: Optional[int] = None,
        timeout: float = 10,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.api_key = api_key if api_key is not None else Config.ZOTERO_API_KEY
        self.library_id = str(library_id if library_id is not None else Config.ZOTERO_USER_ID)
        self.library_type = library_type or Config.ZOTERO_LIBRARY_TYPE
        self.base_url = (base_url or Config.ZOTERO_API_URL).rstrip("/")
        self.search_limit = search_limit or Config.SEARCH_RESULTS_LIMIT
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter(ZOTERO_MAX_CALLS, ZOTERO_PERIOD)

        if self.library_type not in ("user", "group"):
            raise ValueError(f"Library type must be 'user' or 'group', got '{self.library_type}'")

    @property
    def library_url(self) -> str:
        prefix = "users" if self.library_type == "user" else "groups"
        return f"{self.base_url}/{prefix}/{self.library_id}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Zotero-API-Version": ZOTERO_API_VERSION}
        if self.api_key:
            headers["Zotero-API-Key"] = self.api_key
        return headers

    @retry(max_retries=3, backoff_factor=0.5)
    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        with self.rate_limiter:
            response = requests.get(
                f"{self.library_url}{path}",
                params=params,
                headers=self._headers(),
                timeout=self.timeout,
            )
        return handle_api_response(response, "Zotero")

    def quick_search(self, query: str, max_results: Optional[int] = None) -> List[CitationRecord]:
        """
        Search titles, creators and years; attachments are excluded.

        Raises:
            ZoteroAPIError: If the request fails
        """
        limit = max_results or self.search_limit
        logger.info(f"Zotero quick search: '{query}' (limit {limit})")
        try:
            items = self._get("/items", {"q": query, "itemType": "-attachment", "limit": limit})
        except requests.exceptions.RequestException as e:
            raise ZoteroAPIError(f"Zotero search failed: {str(e)}") from e

        records = []
        for item in items or []:
            data = item.get("data") or item
            try:
                records.append(CitationRecord.from_dict(data))
            except ValueError:
                logger.warning("Skipping Zotero item without a key")
        return records

    def get_item(self, key: str) -> CitationRecord:
        """
        Fetch one item by key.

        Raises:
            ZoteroAPIError: If the item does not exist or the request fails
        """
        try:
            item = self._get(f"/items/{key}")
        except requests.exceptions.RequestException as e:
            raise ZoteroAPIError(f"Zotero item request failed: {str(e)}") from e
        return CitationRecord.from_dict(item.get("data") or item)

    def check_connection(self) -> bool:
        """Return True if the library's collections can be listed."""
        try:
            self._get("/collections", {"limit": 1})
        except (ZoteroAPIError, requests.exceptions.RequestException) as e:
            logger.warning(f"Zotero connection check failed: {str(e)}")
            return False
        logger.info(f"Connected to Zotero {self.library_type} library {self.library_id}")
        return True
