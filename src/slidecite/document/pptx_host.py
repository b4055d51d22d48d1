"""
PowerPoint backend built on python-pptx.

The citation block lives in a custom XML part related from the
presentation part. Slide tags live in the slide's tags part, referenced
from ``p:cSld/p:custDataLst/p:tags``, which is where PowerPoint and the
Office add-in API keep them.
"""
import logging
import os
import shutil
import tempfile
import xml.etree.ElementTree as ET
from typing import Iterator, List, Optional, Sequence, Tuple

from pptx import Presentation
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.package import Part
from pptx.oxml.ns import qn
from pptx.oxml.xmlchemy import OxmlElement
from pptx.util import Inches, Pt

from ..models import StyledSegment
from .base import DocumentHost, SlideHandle

logger = logging.getLogger(__name__)

PML_NAMESPACE = "http://schemas.openxmlformats.org/presentationml/2006/main"
ET.register_namespace("p", PML_NAMESPACE)

CUSTOM_XML_PARTNAME = "/customXml/item%d.xml"
TAGS_PARTNAME = "/ppt/tags/tag%d.xml"


def _parse_tags(blob: bytes) -> List[Tuple[str, str]]:
    root = ET.fromstring(blob)
    return [
        (tag.get("name", ""), tag.get("val", ""))
        for tag in root.iter(f"{{{PML_NAMESPACE}}}tag")
    ]


def _build_tags(tags: List[Tuple[str, str]]) -> bytes:
    root = ET.Element(f"{{{PML_NAMESPACE}}}tagLst")
    for name, value in tags:
        ET.SubElement(root, f"{{{PML_NAMESPACE}}}tag", {"name": name, "val": value})
    # Tag attributes are unqualified, so the namespace needs a prefix
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


class PptxSlide(SlideHandle):
    """Slide wrapper; tags are read from and written to the slide's tags part."""

    def __init__(self, slide, presentation):
        self._slide = slide
        self._presentation = presentation

    @property
    def slide_id(self) -> str:
        return str(self._slide.slide_id)

    def _tags_element(self, create: bool = False):
        c_sld = self._slide._element.find(qn("p:cSld"))
        cust_data = c_sld.find(qn("p:custDataLst"))
        if cust_data is None:
            if not create:
                return None
            cust_data = OxmlElement("p:custDataLst")
            c_sld.find(qn("p:spTree")).addnext(cust_data)

        tags = cust_data.find(qn("p:tags"))
        if tags is None and create:
            tags = OxmlElement("p:tags")
            cust_data.append(tags)
        return tags

    def _read_tags(self) -> List[Tuple[str, str]]:
        tags = self._tags_element()
        if tags is None or not tags.get(qn("r:id")):
            return []
        part = self._slide.part.rels[tags.get(qn("r:id"))].target_part
        return _parse_tags(part.blob)

    def get_tag(self, name: str) -> Optional[str]:
        for tag_name, value in self._read_tags():
            if tag_name.upper() == name.upper():
                return value
        return None

    def set_tag(self, name: str, value: str) -> None:
        """Set one tag, keeping every other tag on the slide."""
        tags = []
        replaced = False
        for tag_name, tag_value in self._read_tags():
            if tag_name.upper() != name.upper():
                tags.append((tag_name, tag_value))
            elif not replaced:
                tags.append((tag_name, value))
                replaced = True
        if not replaced:
            tags.append((name, value))

        slide_part = self._slide.part
        tags_element = self._tags_element(create=True)
        old_rId = tags_element.get(qn("r:id"))
        if old_rId:
            slide_part.drop_rel(old_rId)

        package = slide_part.package
        part = Part(
            partname=package.next_partname(TAGS_PARTNAME),
            content_type=CT.PML_TAGS,
            package=package,
            blob=_build_tags(tags),
        )
        tags_element.set(qn("r:id"), slide_part.relate_to(part, RT.TAGS))

    def _find_text_shape(self, shape_name: str):
        for shape in self._slide.shapes:
            if shape.name == shape_name and shape.has_text_frame:
                return shape
        return None

    def write_segments(self, shape_name: str, segments: Sequence[StyledSegment]) -> None:
        shape = self._find_text_shape(shape_name)
        if shape is None:
            width = self._presentation.slide_width
            height = self._presentation.slide_height
            shape = self._slide.shapes.add_textbox(
                Inches(0.5), height - Inches(1), width - Inches(1), Inches(0.6)
            )
            shape.name = shape_name
            logger.info(f"Created text box '{shape_name}' on slide {self.slide_id}")

        text_frame = shape.text_frame
        text_frame.clear()
        text_frame.word_wrap = True
        paragraph = text_frame.paragraphs[0]
        for segment in segments:
            # Line feeds become soft line breaks
            for i, line in enumerate(segment.text.split("\n")):
                if i:
                    paragraph.add_line_break()
                if not line:
                    continue
                run = paragraph.add_run()
                run.text = line
                run.font.size = Pt(12)
                run.font.bold = segment.bold
                run.font.italic = segment.italic

    def text_of(self, shape_name: str) -> str:
        shape = self._find_text_shape(shape_name)
        return shape.text_frame.text if shape is not None else ""


class PptxDocument(DocumentHost):
    """
    A .pptx deck opened with python-pptx.

    Changes stay in memory until ``save`` is called.
    """

    def __init__(self, presentation, path: Optional[str] = None):
        self.presentation = presentation
        self.path = path

    @classmethod
    def open(cls, path: str) -> 'PptxDocument':
        return cls(Presentation(path), path)

    @classmethod
    def new(cls, slide_count: int = 1) -> 'PptxDocument':
        """Create a deck with ``slide_count`` blank slides."""
        presentation = Presentation()
        blank = presentation.slide_layouts[6]
        for _ in range(slide_count):
            presentation.slides.add_slide(blank)
        return cls(presentation)

    def _custom_xml_parts(self, namespace: str) -> Iterator[Tuple[str, Part]]:
        rels = self.presentation.part.rels
        for rId, rel in list(rels.items()):
            if rel.reltype != RT.CUSTOM_XML or rel.is_external:
                continue
            part = rel.target_part
            try:
                root = ET.fromstring(part.blob)
            except ET.ParseError:
                logger.warning(f"Skipping unreadable custom XML part {part.partname}")
                continue
            if root.tag.startswith(f"{{{namespace}}}"):
                yield rId, part

    def read_custom_xml(self, namespace: str) -> Optional[bytes]:
        for _, part in self._custom_xml_parts(namespace):
            return part.blob
        return None

    def write_custom_xml(self, namespace: str, xml: bytes) -> None:
        self.delete_custom_xml(namespace)
        presentation_part = self.presentation.part
        package = presentation_part.package
        part = Part(
            partname=package.next_partname(CUSTOM_XML_PARTNAME),
            content_type=CT.XML,
            package=package,
            blob=xml,
        )
        presentation_part.relate_to(part, RT.CUSTOM_XML)

    def delete_custom_xml(self, namespace: str) -> bool:
        found = list(self._custom_xml_parts(namespace))
        for rId, _ in found:
            self.presentation.part.drop_rel(rId)
        return bool(found)

    def slides(self) -> List[SlideHandle]:
        return [PptxSlide(slide, self.presentation) for slide in self.presentation.slides]

    def save(self, path: Optional[str] = None) -> None:
        """
        Atomically write the deck (temp file + rename).

        Raises:
            ValueError: If no path is given and the deck was not opened from a file
            IOError: If the write fails
        """
        path = path or self.path
        if not path:
            raise ValueError("No path to save the presentation to")

        target_dir = os.path.dirname(os.path.abspath(path)) or '.'
        fd, temp_path = tempfile.mkstemp(suffix='.pptx.tmp', dir=target_dir)
        try:
            with os.fdopen(fd, 'wb') as tf:
                self.presentation.save(tf)
                tf.flush()
                os.fsync(tf.fileno())
            shutil.move(temp_path, path)
        except Exception:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        self.path = path
