"""Bibliography export to Word."""
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from docx import Document

from .config import Config
from .formatting import validate_citation_format
from .models import CitationFormat, CitationRecord, Position
from .session import CitationSession

logger = logging.getLogger(__name__)


def cited_records(session: CitationSession) -> List[CitationRecord]:
    """Every record referenced by the deck, in slide order, each once."""
    keys: List[str] = []
    seen = set()
    for slide in session.document.slides():
        for key in session.index.get_keys(slide):
            if key not in seen:
                seen.add(key)
                keys.append(key)
    return [r for r in session.store.get_many(keys) if r is not None]


async def save_bibliography_to_word(
    session: CitationSession,
    path: str,
    citation_format: Optional[Union[CitationFormat, Dict[str, Any]]] = None,
    title: str = "References",
) -> str:
    """
    Write the deck's cited records to a .docx file, one paragraph each.

    Returns:
        The path written
    """
    fmt = validate_citation_format(citation_format or Config.get_citation_format())
    records = cited_records(session)

    doc = Document()
    doc.add_heading(title, level=1)
    doc.add_paragraph(
        f"Generated {datetime.now():%Y-%m-%d %H:%M} "
        f"from {len(records)} cited source(s)."
    )
    for idx, record in enumerate(records):
        paragraph = doc.add_paragraph()
        for segment in await session.formatter.format(record, fmt, Position(idx)):
            run = paragraph.add_run(segment.text)
            run.bold = segment.bold
            run.italic = segment.italic

    folder = os.path.dirname(os.path.abspath(path))
    os.makedirs(folder, exist_ok=True)
    doc.save(path)
    logger.info(f"Bibliography with {len(records)} entries saved to {path}")
    return path
