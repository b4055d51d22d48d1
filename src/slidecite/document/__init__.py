"""Documents that can carry citation metadata."""
from .base import DocumentHost, SlideHandle
from .memory import MemoryDocument, MemorySlide
from .pptx_host import PptxDocument, PptxSlide

__all__ = [
    'DocumentHost',
    'SlideHandle',
    'MemoryDocument',
    'MemorySlide',
    'PptxDocument',
    'PptxSlide',
]
