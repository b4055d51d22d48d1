"""Configuration loader with environment variable support."""
import json
import logging
import os
from typing import Dict, Final, Optional

from dotenv import load_dotenv

from .models import DEFAULT_DELIMITER, CitationFormat
from .formatting import validate_citation_formats
from .utils.error_handling import MalformedTemplateConfig

# Load environment variables from .env file if it exists
load_dotenv()

logger = logging.getLogger(__name__)

# Identifiers shared with documents written by the Zotero PowerPoint add-in
CITATION_XML_NAMESPACE: Final[str] = "http://zotero.org/citations"
CITATION_XML_ROOT: Final[str] = "ZoteroCitations"
CITATION_TAG_KEY: Final[str] = "ZOTERO_CITATIONS"
KEY_SEPARATOR: Final[str] = ","
STORE_VERSION: Final[int] = 1

BUILTIN_CITATION_FORMATS: Final[Dict[str, Dict[str, str]]] = {
    "author-year": {"template": "{creator} ({year})", "delimiter": DEFAULT_DELIMITER},
    "numbered": {"template": "[{#}] {creator}, <i>{journalAbbr}</i> {year}", "delimiter": "\n"},
    "journal": {"template": "{creator}, <i>{journalAbbr}</i> <b>{volume}</b>, {pages} ({year})"},
}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={value!r}, using {default}")
        return default


def _load_citation_formats() -> Dict[str, CitationFormat]:
    """
    Built-in formats overlaid with the CITATION_FORMATS JSON object.

    Raises:
        MalformedTemplateConfig: If the variable is not a JSON object of valid formats
    """
    raw: Dict[str, object] = dict(BUILTIN_CITATION_FORMATS)
    custom = os.getenv("CITATION_FORMATS")
    if custom:
        try:
            overrides = json.loads(custom)
        except json.JSONDecodeError as e:
            raise MalformedTemplateConfig(f"CITATION_FORMATS is not valid JSON: {e}") from e
        if not isinstance(overrides, dict):
            raise MalformedTemplateConfig("CITATION_FORMATS must be a JSON object of named formats")
        raw.update(overrides)
    return validate_citation_formats(raw)


class Config:
    """Application configuration."""

    # Zotero Web API
    ZOTERO_API_KEY: str = os.getenv("ZOTERO_API_KEY", "")
    ZOTERO_USER_ID: str = os.getenv("ZOTERO_USER_ID", "")
    ZOTERO_LIBRARY_TYPE: str = os.getenv("ZOTERO_LIBRARY_TYPE", "user")
    ZOTERO_API_URL: str = os.getenv("ZOTERO_API_URL", "https://api.zotero.org")
    SEARCH_RESULTS_LIMIT: int = _env_int("SEARCH_RESULTS_LIMIT", 5)

    # Rendering
    CITATION_SHAPE_NAME: str = os.getenv("CITATION_SHAPE_NAME", "Citation")
    _citation_formats: Optional[Dict[str, CitationFormat]] = None
    SELECTED_CITATION_FORMAT: str = os.getenv("SELECTED_CITATION_FORMAT", "author-year")

    # Journal abbreviations (NLM catalogue)
    JOURNAL_ABBREVIATIONS_URL: str = os.getenv(
        "JOURNAL_ABBREVIATIONS_URL", "https://ftp.ncbi.nih.gov/pubmed/J_Medline.txt"
    )
    ABBREVIATION_CACHE_TTL: int = _env_int("ABBREVIATION_CACHE_TTL", 24 * 60 * 60)
    ABBREVIATION_MODE: str = os.getenv("ABBREVIATION_MODE", "MedAbbr")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")

    @classmethod
    def is_configured(cls) -> bool:
        """Check whether Zotero credentials are present."""
        return bool(cls.ZOTERO_API_KEY and cls.ZOTERO_USER_ID)

    @classmethod
    def citation_formats(cls) -> Dict[str, CitationFormat]:
        """
        All configured formats, loaded from the environment on first use.

        Raises:
            MalformedTemplateConfig: If CITATION_FORMATS is malformed
        """
        if cls._citation_formats is None:
            cls._citation_formats = _load_citation_formats()
        return cls._citation_formats

    @classmethod
    def get_citation_format(cls, name: Optional[str] = None) -> CitationFormat:
        """
        Get a named citation format, or the selected one.

        Raises:
            KeyError: If no format with that name is configured
            MalformedTemplateConfig: If CITATION_FORMATS is malformed
        """
        name = name or cls.SELECTED_CITATION_FORMAT
        formats = cls.citation_formats()
        try:
            return formats[name]
        except KeyError:
            raise KeyError(
                f"Unknown citation format '{name}'. "
                f"Available: {', '.join(sorted(formats))}"
            ) from None
