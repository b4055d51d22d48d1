"""
Citation operations on one open document.

A session ties together the store, the slide index, the collector and the
formatter of a single document. Create one per document; nothing is shared
between sessions.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from .collector import ReferenceCollector
from .config import Config
from .document.base import DocumentHost, SlideHandle
from .formatting import CitationFormatter
from .models import CitationFormat, CitationRecord, StyledSegment
from .page_index import SlideReferenceIndex
from .store import CitationStore
from .utils.error_handling import StoreIOError
from .utils.logging_setup import log_operation

logger = logging.getLogger(__name__)

SlideRef = Union[SlideHandle, int]


class CitationSession:
    """Insert, list, reorder, remove and render the citations of a document."""

    def __init__(
        self,
        document: DocumentHost,
        store: Optional[CitationStore] = None,
        index: Optional[SlideReferenceIndex] = None,
        collector: Optional[ReferenceCollector] = None,
        formatter: Optional[CitationFormatter] = None,
        shape_name: Optional[str] = None,
    ):
        self.document = document
        self.store = store or CitationStore(document)
        self.index = index or SlideReferenceIndex()
        self.collector = collector or ReferenceCollector(document, self.store, self.index)
        self.formatter = formatter or CitationFormatter()
        self.shape_name = shape_name or Config.CITATION_SHAPE_NAME

    def slide(self, slide: SlideRef) -> SlideHandle:
        """Accept a slide handle or a 1-based slide number."""
        if isinstance(slide, SlideHandle):
            return slide
        return self.document.slide_at(int(slide))

    def insert_citation(self, slide: SlideRef, record: CitationRecord) -> None:
        """Store the record and attach its key to the slide."""
        handle = self.slide(slide)
        now = datetime.now().isoformat()
        if not record.date_added:
            record.date_added = now
        record.date_modified = now

        self.store.upsert(record)
        self.index.add_key(handle, record.key)
        log_operation("Citation inserted", f"{record.key} on slide {handle.slide_id}")

    def citations_on_slide(self, slide: SlideRef) -> List[CitationRecord]:
        """Records attached to the slide, in slide order; missing records are skipped."""
        handle = self.slide(slide)
        records = self.store.get_many(self.index.get_keys(handle))
        return [r for r in records if r is not None]

    def remove_citation(self, slide: SlideRef, key: str, prune: bool = True) -> bool:
        """
        Detach a key from the slide.

        With ``prune`` the store is swept afterwards, so the record goes away
        once no slide references it.
        """
        handle = self.slide(slide)
        removed = self.index.remove_key(handle, key)
        if prune:
            self.collector.prune()
        return removed

    def reorder(self, slide: SlideRef, keys: List[str]) -> None:
        self.index.set_order(self.slide(slide), keys)

    async def render_slide(
        self,
        slide: SlideRef,
        citation_format: Optional[Union[CitationFormat, Dict[str, Any]]] = None,
        start_index: int = 0,
    ) -> List[StyledSegment]:
        """Render the slide's citations with the given or the selected format."""
        if citation_format is None:
            citation_format = Config.get_citation_format()
        handle = self.slide(slide)
        records = self.store.get_many(self.index.get_keys(handle))
        return await self.formatter.format_many(records, citation_format, start_index)

    async def apply_to_slide(
        self,
        slide: SlideRef,
        citation_format: Optional[Union[CitationFormat, Dict[str, Any]]] = None,
        start_index: int = 0,
    ) -> List[StyledSegment]:
        """Render the slide's citations into its citation text box."""
        handle = self.slide(slide)
        segments = await self.render_slide(handle, citation_format, start_index)
        try:
            handle.write_segments(self.shape_name, segments)
        except Exception as e:
            raise StoreIOError("Failed to write citation text", e) from e
        logger.info(f"Wrote {len(segments)} segment(s) to '{self.shape_name}' on slide {handle.slide_id}")
        return segments

    def prune(self) -> int:
        return self.collector.prune()

    def describe(self) -> Dict[str, Any]:
        """Dump of the stored block and every slide's tag, for debugging."""
        xml = self.document.read_custom_xml(self.store.namespace)
        slides = []
        for number, handle in enumerate(self.document.slides(), start=1):
            slides.append({
                "number": number,
                "slide_id": handle.slide_id,
                "tag": handle.get_tag(self.index.tag_name),
            })
        return {
            "store_xml": xml.decode("utf-8") if isinstance(xml, bytes) else xml,
            "citations": sorted(self.store.get_all()),
            "tag_name": self.index.tag_name,
            "slides": slides,
        }
