"""Citations for PowerPoint slides, backed by a Zotero library."""
from .collector import ReferenceCollector
from .config import Config
from .formatting import CitationFormatter
from .models import CitationFormat, CitationRecord, Creator, Position, StyledSegment
from .page_index import SlideReferenceIndex
from .session import CitationSession
from .store import CitationStore

__version__ = "1.0.0"
__all__ = [
    "CitationStore",
    "SlideReferenceIndex",
    "ReferenceCollector",
    "CitationFormatter",
    "CitationSession",
    "CitationRecord",
    "CitationFormat",
    "Creator",
    "Position",
    "StyledSegment",
    "Config",
]
