"""
Journal title abbreviations from the NLM journal list (J_Medline.txt).

The list is a plain-text file of ``Field: value`` lines, one block per
journal, blocks separated by lines of dashes::

    --------------------------------------------------------
    JrId: 1
    JournalTitle: AADE editors' journal
    MedAbbr: AADE Ed J
    ISSN (Print): 0160-6999
    ISSN (Online):
    IsoAbbr: AADE Ed J
    NlmId: 7708172
"""
import logging
import time
from typing import Dict, List, Optional

import aiohttp

from .config import Config

logger = logging.getLogger(__name__)

ABBREVIATION_MODES = ("MedAbbr", "IsoAbbr")

_FIELD_NAMES = {
    "jrid": "JrId",
    "journaltitle": "JournalTitle",
    "medabbr": "MedAbbr",
    "isoabbr": "IsoAbbr",
    "issn (print)": "ISSN (Print)",
    "issn (online)": "ISSN (Online)",
    "nlmid": "NlmId",
}


def parse_medline(text: str) -> List[Dict[str, str]]:
    """Parse J_Medline.txt into one dict per journal."""
    entries = []
    current: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip() or line.startswith("-"):
            if current:
                entries.append(current)
                current = {}
            continue

        name, sep, value = line.partition(":")
        if not sep:
            continue
        field = _FIELD_NAMES.get(name.strip().lower())
        if field:
            current[field] = value.strip()

    if current:
        entries.append(current)
    return entries


def build_abbreviation_map(entries: List[Dict[str, str]], mode: str) -> Dict[str, str]:
    """Map lower-cased journal title to its abbreviation in ``mode``."""
    abbreviations = {}
    for entry in entries:
        title = entry.get("JournalTitle")
        abbreviation = entry.get(mode)
        if title and abbreviation:
            abbreviations[title.lower()] = abbreviation
    return abbreviations


def _normalize_mode(mode: str) -> str:
    for known in ABBREVIATION_MODES:
        if mode.lower() == known.lower():
            return known
    raise ValueError(f"Unknown abbreviation mode '{mode}'. Use one of: {', '.join(ABBREVIATION_MODES)}")


class JournalAbbreviationService:
    """
    Downloads and caches journal abbreviations.

    The cache belongs to the instance and expires after ``cache_ttl``
    seconds. Create one service per application and share it.
    """

    def __init__(self, url: Optional[str] = None, cache_ttl: Optional[int] = None,
                 mode: Optional[str] = None, timeout: float = 30):
        self.url = url or Config.JOURNAL_ABBREVIATIONS_URL
        self.cache_ttl = Config.ABBREVIATION_CACHE_TTL if cache_ttl is None else cache_ttl
        self.mode = _normalize_mode(mode or Config.ABBREVIATION_MODE)
        self.timeout = timeout
        self._entries: Optional[List[Dict[str, str]]] = None
        self._maps: Dict[str, Dict[str, str]] = {}
        self._cached_at: Optional[float] = None

    def _cache_valid(self) -> bool:
        if self._cached_at is None:
            return False
        return time.time() - self._cached_at < self.cache_ttl

    def clear_cache(self) -> None:
        self._entries = None
        self._maps = {}
        self._cached_at = None
        logger.info("Journal abbreviation cache cleared")

    async def _fetch_text(self) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(self.url) as response:
                response.raise_for_status()
                return await response.text()

    async def get_entries(self) -> List[Dict[str, str]]:
        """
        All journal entries, downloaded on first use and after expiry.

        Raises:
            aiohttp.ClientError: If the download fails
        """
        if self._entries is not None and self._cache_valid():
            return self._entries

        logger.info(f"Fetching journal abbreviations from {self.url}")
        entries = parse_medline(await self._fetch_text())
        logger.info(f"Loaded {len(entries)} journal entries")

        self._entries = entries
        self._maps = {}
        self._cached_at = time.time()
        return entries

    async def get_map(self, mode: Optional[str] = None) -> Dict[str, str]:
        mode = _normalize_mode(mode or self.mode)
        if mode in self._maps and self._cache_valid():
            return self._maps[mode]

        abbreviations = build_abbreviation_map(await self.get_entries(), mode)
        self._maps[mode] = abbreviations
        return abbreviations

    async def lookup(self, journal_title: Optional[str], mode: Optional[str] = None) -> Optional[str]:
        """Abbreviation for an exact (case-insensitive) title, or None."""
        if not journal_title:
            return None
        abbreviations = await self.get_map(mode)
        return abbreviations.get(journal_title.strip().lower())

    async def __call__(self, journal_title: str) -> Optional[str]:
        return await self.lookup(journal_title)
