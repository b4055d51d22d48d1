"""Base classes for documents that can carry citation metadata."""
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..models import StyledSegment


class SlideHandle(ABC):
    """A single slide: string tags plus named text shapes."""

    @property
    @abstractmethod
    def slide_id(self) -> str:
        """Stable identifier of the slide within its document."""
        pass

    @abstractmethod
    def get_tag(self, name: str) -> Optional[str]:
        """Return the tag value, or None when the slide has no such tag."""
        pass

    @abstractmethod
    def set_tag(self, name: str, value: str) -> None:
        pass

    @abstractmethod
    def write_segments(self, shape_name: str, segments: Sequence[StyledSegment]) -> None:
        """Replace the text of the named text box, creating it if needed."""
        pass


class DocumentHost(ABC):
    """A document holding custom XML blocks and an ordered list of slides."""

    @abstractmethod
    def read_custom_xml(self, namespace: str) -> Optional[bytes]:
        """Return the block whose root is in ``namespace``, or None."""
        pass

    @abstractmethod
    def write_custom_xml(self, namespace: str, xml: bytes) -> None:
        """Create or replace the block for ``namespace``."""
        pass

    @abstractmethod
    def delete_custom_xml(self, namespace: str) -> bool:
        """Delete the block for ``namespace``; True if one existed."""
        pass

    @abstractmethod
    def slides(self) -> List[SlideHandle]:
        pass

    def get_slide(self, slide_id: str) -> SlideHandle:
        """
        Find a slide by id.

        Raises:
            KeyError: If the document has no such slide
        """
        for slide in self.slides():
            if slide.slide_id == str(slide_id):
                return slide
        raise KeyError(f"Slide '{slide_id}' not found")

    def slide_at(self, number: int) -> SlideHandle:
        """
        Get a slide by its 1-based position.

        Raises:
            IndexError: If the position is out of range
        """
        slides = self.slides()
        if number < 1 or number > len(slides):
            raise IndexError(f"Slide {number} out of range (document has {len(slides)} slides)")
        return slides[number - 1]
