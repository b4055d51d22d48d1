"""Removes stored citations that no slide references any more."""
import logging
from typing import Set

from .document.base import DocumentHost
from .page_index import SlideReferenceIndex
from .store import CitationStore
from .utils.error_handling import StoreIOError

logger = logging.getLogger(__name__)


class ReferenceCollector:
    """Full-document sweep over slide references."""

    def __init__(self, document: DocumentHost, store: CitationStore, index: SlideReferenceIndex):
        self.document = document
        self.store = store
        self.index = index

    def used_keys(self) -> Set[str]:
        """
        Union of the keys referenced by every slide.

        A slide whose list cannot be read is logged and contributes nothing.
        """
        used: Set[str] = set()
        for slide in self.document.slides():
            try:
                used.update(self.index.get_keys(slide))
            except StoreIOError as e:
                logger.warning(f"Could not read citations of slide {slide.slide_id}: {str(e)}")
        return used

    def prune(self) -> int:
        """Delete unreferenced records; returns how many were removed."""
        removed = self.store.retain(self.used_keys())
        logger.info(f"Pruned {removed} unreferenced citation(s)")
        return removed
