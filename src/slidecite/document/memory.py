"""In-process document, used for tests and scripting."""
from typing import Dict, List, Optional, Sequence

from ..models import StyledSegment
from .base import DocumentHost, SlideHandle


class MemorySlide(SlideHandle):
    def __init__(self, slide_id: str):
        self._slide_id = str(slide_id)
        self.tags: Dict[str, str] = {}
        self.text_boxes: Dict[str, List[StyledSegment]] = {}

    @property
    def slide_id(self) -> str:
        return self._slide_id

    def get_tag(self, name: str) -> Optional[str]:
        return self.tags.get(name)

    def set_tag(self, name: str, value: str) -> None:
        self.tags[name] = value

    def write_segments(self, shape_name: str, segments: Sequence[StyledSegment]) -> None:
        self.text_boxes[shape_name] = [
            StyledSegment(text=s.text, bold=s.bold, italic=s.italic) for s in segments
        ]

    def text_of(self, shape_name: str) -> str:
        """Plain text of a text box written by write_segments."""
        return "".join(s.text for s in self.text_boxes.get(shape_name, []))


class MemoryDocument(DocumentHost):
    """
    A document kept entirely in memory.

    Custom XML blocks are stored as bytes keyed by namespace, so reads
    and writes go through the same serialization as a real deck.
    """

    def __init__(self, slide_count: int = 0):
        self.custom_xml: Dict[str, bytes] = {}
        self._slides: List[MemorySlide] = []
        for _ in range(slide_count):
            self.add_slide()

    def add_slide(self) -> MemorySlide:
        slide = MemorySlide(str(len(self._slides) + 256))
        self._slides.append(slide)
        return slide

    def read_custom_xml(self, namespace: str) -> Optional[bytes]:
        return self.custom_xml.get(namespace)

    def write_custom_xml(self, namespace: str, xml: bytes) -> None:
        self.custom_xml[namespace] = xml

    def delete_custom_xml(self, namespace: str) -> bool:
        return self.custom_xml.pop(namespace, None) is not None

    def slides(self) -> List[SlideHandle]:
        return list(self._slides)
