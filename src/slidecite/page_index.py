"""Per-slide ordered citation keys, kept in a slide tag."""
import logging
from typing import Iterable, List

from .config import CITATION_TAG_KEY, KEY_SEPARATOR
from .document.base import SlideHandle
from .utils.error_handling import store_io_handler

logger = logging.getLogger(__name__)


def _check_key(key: str) -> str:
    key = str(key)
    if not key:
        raise ValueError("Citation key must be a non-empty string")
    if KEY_SEPARATOR in key:
        raise ValueError(f"Citation key may not contain '{KEY_SEPARATOR}': {key!r}")
    return key


class SlideReferenceIndex:
    """
    Reads and writes the ordered key list of a slide.

    The list is stored comma-joined under a single tag; an empty list is
    stored as the empty string rather than removing the tag.
    """

    def __init__(self, tag_name: str = CITATION_TAG_KEY):
        self.tag_name = tag_name

    def _decode(self, value) -> List[str]:
        if not value:
            return []
        return [k for k in value.split(KEY_SEPARATOR) if k]

    def _write(self, slide: SlideHandle, keys: List[str]) -> None:
        slide.set_tag(self.tag_name, KEY_SEPARATOR.join(keys))

    @store_io_handler("read slide citations")
    def get_keys(self, slide: SlideHandle) -> List[str]:
        return self._decode(slide.get_tag(self.tag_name))

    def add_key(self, slide: SlideHandle, key: str) -> None:
        """Append a key unless the slide already lists it."""
        key = _check_key(key)
        self._add_key(slide, key)

    @store_io_handler("attach citation to slide")
    def _add_key(self, slide: SlideHandle, key: str) -> None:
        keys = self._decode(slide.get_tag(self.tag_name))
        if key in keys:
            return
        keys.append(key)
        self._write(slide, keys)

    @store_io_handler("detach citation from slide")
    def remove_key(self, slide: SlideHandle, key: str) -> bool:
        keys = self._decode(slide.get_tag(self.tag_name))
        if str(key) not in keys:
            return False
        keys.remove(str(key))
        self._write(slide, keys)
        logger.info(f"Citation {key} detached from slide {slide.slide_id}")
        return True

    def set_order(self, slide: SlideHandle, keys: Iterable[str]) -> None:
        """Overwrite the slide's list with ``keys`` as given."""
        keys = [_check_key(k) for k in keys]
        self._set_order(slide, keys)

    @store_io_handler("reorder slide citations")
    def _set_order(self, slide: SlideHandle, keys: List[str]) -> None:
        self._write(slide, keys)
