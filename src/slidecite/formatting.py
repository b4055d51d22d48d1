"""
Citation template rendering.

A citation format is a template such as ``"{creator}, <i>{journalAbbr}</i> ({year})"``
plus a delimiter. Rendering substitutes placeholders from a record, then
turns the inline ``<b>``/``<i>`` markup into styled segments.
"""
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import jsonschema

from .models import CitationFormat, CitationRecord, Creator, Position, StyledSegment
from .utils.error_handling import MalformedTemplateConfig

logger = logging.getLogger(__name__)

# async (publication title) -> abbreviation or None
AbbreviationLookup = Callable[[str], Awaitable[Optional[str]]]

CITATION_FORMAT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "template": {"type": "string"},
        # Older settings store the template under "format"
        "format": {"type": "string"},
        "delimiter": {"type": "string"},
    },
    "anyOf": [
        {"required": ["template"]},
        {"required": ["format"]},
    ],
}

_PLACEHOLDER = re.compile(r"\{([A-Za-z#]+)\}")
_MARKUP_TAG = re.compile(r"<(/?)([bi])>", re.IGNORECASE)


def validate_citation_format(obj: Union[CitationFormat, Dict[str, Any]]) -> CitationFormat:
    """
    Check the shape of a citation format and return it as a CitationFormat.

    Raises:
        MalformedTemplateConfig: If the template is missing or a field has the wrong type
    """
    data = obj.to_dict() if isinstance(obj, CitationFormat) else obj
    try:
        jsonschema.validate(instance=data, schema=CITATION_FORMAT_SCHEMA)
    except jsonschema.ValidationError as e:
        raise MalformedTemplateConfig(f"Invalid citation format: {e.message}") from e

    template = data["template"] if "template" in data else data["format"]
    if "delimiter" in data:
        return CitationFormat(template=template, delimiter=data["delimiter"])
    return CitationFormat(template=template)


def validate_citation_formats(formats: Any) -> Dict[str, CitationFormat]:
    """Validate a name -> format mapping."""
    if not isinstance(formats, dict):
        raise MalformedTemplateConfig("Citation formats must be an object keyed by format name")

    validated = {}
    for name, fmt in formats.items():
        try:
            validated[str(name)] = validate_citation_format(fmt)
        except MalformedTemplateConfig as e:
            raise MalformedTemplateConfig(f"Citation format '{name}': {e}") from e
    return validated


def format_creators(creators: Sequence[Creator]) -> str:
    """Short author string: 'A', 'A and B' or 'A et al.'."""
    if not creators:
        return "Unknown"
    if len(creators) == 1:
        return creators[0].display_name
    if len(creators) == 2:
        return f"{creators[0].display_name} and {creators[1].display_name}"
    return f"{creators[0].display_name} et al."


def _append_segment(segments: List[StyledSegment], text: str, bold: bool, italic: bool) -> None:
    if not text:
        return
    if segments and segments[-1].bold == bold and segments[-1].italic == italic:
        segments[-1].text += text
    else:
        segments.append(StyledSegment(text=text, bold=bold, italic=italic))


def parse_markup(text: str) -> List[StyledSegment]:
    """
    Split text with inline <b>/<i> tags into styled segments.

    An opening tag switches its style on and the matching closing tag
    switches it off for all following text. Tags do not need to nest.
    """
    segments: List[StyledSegment] = []
    bold = italic = False
    pos = 0
    for match in _MARKUP_TAG.finditer(text):
        _append_segment(segments, text[pos:match.start()], bold, italic)
        is_open = not match.group(1)
        if match.group(2).lower() == "b":
            bold = is_open
        else:
            italic = is_open
        pos = match.end()
    _append_segment(segments, text[pos:], bold, italic)
    return segments


class CitationFormatter:
    """Expands citation records into styled segments."""

    def __init__(self, abbreviation_lookup: Optional[AbbreviationLookup] = None):
        """
        Args:
            abbreviation_lookup: Async callable mapping a journal title to its
                abbreviation, used when a record carries none of its own
        """
        self.abbreviation_lookup = abbreviation_lookup

    async def _journal_abbreviation(self, record: CitationRecord, template: str) -> str:
        journal = record.publication_title
        if record.journal_abbreviation and record.journal_abbreviation != journal:
            return record.journal_abbreviation

        if self.abbreviation_lookup is not None and journal and "{journalAbbr}" in template:
            try:
                found = await self.abbreviation_lookup(journal)
            except Exception as e:
                logger.warning(f"Journal abbreviation lookup failed for '{journal}': {str(e)}")
                found = None
            if found:
                return found
        return journal

    async def _placeholder_values(self, record: CitationRecord, template: str) -> Dict[str, str]:
        values = {
            "key": record.key,
            "title": record.title or "Untitled",
            "shortTitle": record.extra_fields.get("shortTitle") or record.title or "Untitled",
            "year": record.year or "n.d.",
            "date": record.date or "n.d.",
            "creator": format_creators(record.creators),
            "creators": ", ".join(c.display_name for c in record.creators) or "Unknown",
            "journal": record.publication_title,
            "volume": record.volume,
            "issue": record.issue,
            "pages": record.pages,
            "publisher": record.publisher,
            "place": record.place,
            "url": record.url,
            "itemType": record.item_type,
            "doi": record.doi,
            "isbn": record.isbn,
        }
        if "{journalAbbr}" in template:
            values["journalAbbr"] = await self._journal_abbreviation(record, template)
        return values

    async def format(
        self,
        record: CitationRecord,
        citation_format: Union[CitationFormat, Dict[str, Any]],
        position: Optional[Position] = None,
    ) -> List[StyledSegment]:
        """
        Render one record.

        ``{#}`` is replaced only when a position is given; unknown
        placeholders are left as they are.

        Raises:
            MalformedTemplateConfig: If the format fails validation
        """
        template = validate_citation_format(citation_format).template
        values = await self._placeholder_values(record, template)
        if position is not None:
            values["#"] = str(position.number)

        text = _PLACEHOLDER.sub(lambda m: values.get(m.group(1), m.group(0)), template)
        return parse_markup(text)

    async def format_many(
        self,
        records: Sequence[Optional[CitationRecord]],
        citation_format: Union[CitationFormat, Dict[str, Any]],
        start_index: int = 0,
    ) -> List[StyledSegment]:
        """
        Render records in order, separated by the format's delimiter.

        Missing records (None) are skipped and do not take a number.
        """
        fmt = validate_citation_format(citation_format)
        segments: List[StyledSegment] = []
        index = 0
        for record in records:
            if record is None:
                continue
            if index and fmt.delimiter:
                segments.append(StyledSegment(text=fmt.delimiter))
            segments.extend(await self.format(record, fmt, Position(index, start_index)))
            index += 1
        return segments
