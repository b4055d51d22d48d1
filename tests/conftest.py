"""Pytest configuration and fixtures."""
import os
import sys
from pathlib import Path
from typing import Dict, Any, Generator

import pytest
from unittest.mock import MagicMock, patch

# Make the src/ layout importable without an install
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from slidecite.document import MemoryDocument  # noqa: E402
from slidecite.models import CitationRecord  # noqa: E402
from slidecite.session import CitationSession  # noqa: E402


# Sample test data
@pytest.fixture
def sample_item() -> Dict[str, Any]:
    """Return Zotero item data as the Web API delivers it."""
    return {
        "key": "ABCD1234",
        "version": 42,
        "itemType": "journalArticle",
        "title": "Attention Is All You Need",
        "creators": [
            {"creatorType": "author", "firstName": "Ashish", "lastName": "Vaswani"},
            {"creatorType": "author", "firstName": "Noam", "lastName": "Shazeer"},
        ],
        "date": "2017-06-12",
        "publicationTitle": "Advances in Neural Information Processing Systems",
        "journalAbbreviation": "",
        "volume": "30",
        "issue": "",
        "pages": "5998-6008",
        "DOI": "10.5555/3295222.3295349",
        "url": "https://arxiv.org/abs/1706.03762",
        "shortTitle": "Attention",
        "tags": [{"tag": "transformers"}, {"tag": "nlp", "type": 1}],
        "collections": ["COLL0001"],
        "relations": {},
        "dateAdded": "2023-01-01T10:00:00Z",
        "dateModified": "2023-01-02T10:00:00Z",
    }


@pytest.fixture
def sample_record(sample_item) -> CitationRecord:
    return CitationRecord.from_dict(sample_item)


def make_record(key: str, last_names=("Smith",), **fields) -> CitationRecord:
    """Build a small record with one creator per last name."""
    data = {
        "key": key,
        "title": fields.pop("title", f"Title {key}"),
        "date": fields.pop("date", "2020-01-01"),
        "creators": [{"creatorType": "author", "lastName": n} for n in last_names],
    }
    data.update(fields)
    return CitationRecord.from_dict(data)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def document() -> MemoryDocument:
    """An in-memory document with three slides."""
    return MemoryDocument(slide_count=3)


@pytest.fixture
def session(document) -> CitationSession:
    return CitationSession(document, shape_name="Citation")


@pytest.fixture
def mock_requests_get() -> Generator[MagicMock, None, None]:
    """Mock for requests.get."""
    with patch('requests.get') as mock_get:
        yield mock_get


@pytest.fixture(autouse=True)
def mock_environment_vars() -> None:
    """Set up test environment variables."""
    os.environ.update({
        "LOG_LEVEL": "WARNING",
    })
