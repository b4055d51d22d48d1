"""Citation data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_DELIMITER = ";  "

# Python attribute -> Zotero item field
_SCALAR_FIELDS = {
    "item_type": "itemType",
    "title": "title",
    "date": "date",
    "publication_title": "publicationTitle",
    "journal_abbreviation": "journalAbbreviation",
    "volume": "volume",
    "issue": "issue",
    "pages": "pages",
    "doi": "DOI",
    "isbn": "ISBN",
    "issn": "ISSN",
    "url": "url",
    "publisher": "publisher",
    "place": "place",
    "abstract_note": "abstractNote",
    "date_added": "dateAdded",
    "date_modified": "dateModified",
}
_LIST_FIELDS = ("creators", "tags", "collections")
_KNOWN_FIELDS = {"key", "version", *_SCALAR_FIELDS.values(), *_LIST_FIELDS}


@dataclass
class Creator:
    """A Zotero creator: either a split name or a single display name."""
    creator_type: str = "author"
    last_name: Optional[str] = None
    first_name: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.last_name or self.name or "Anonymous"

    def to_dict(self) -> Dict[str, str]:
        data = {"creatorType": self.creator_type}
        if self.first_name is not None:
            data["firstName"] = self.first_name
        if self.last_name is not None:
            data["lastName"] = self.last_name
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Creator':
        def _opt(k):
            value = data.get(k)
            return None if value is None else str(value)

        return cls(
            creator_type=str(data.get("creatorType") or "author"),
            last_name=_opt("lastName"),
            first_name=_opt("firstName"),
            name=_opt("name"),
        )


@dataclass
class CitationRecord:
    """A full bibliographic record, keyed by its Zotero item key."""
    key: str
    item_type: str = ""
    title: str = ""
    date: str = ""
    creators: List[Creator] = field(default_factory=list)

    publication_title: str = ""
    journal_abbreviation: str = ""
    volume: str = ""
    issue: str = ""
    pages: str = ""
    doi: str = ""
    isbn: str = ""
    issn: str = ""
    url: str = ""
    publisher: str = ""
    place: str = ""
    abstract_note: str = ""
    tags: List[str] = field(default_factory=list)
    collections: List[str] = field(default_factory=list)

    version: int = 0
    date_added: str = ""
    date_modified: str = ""

    # Item-type specific Zotero fields we do not model explicitly
    extra_fields: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if self.key is None or str(self.key) == "":
            raise ValueError("Citation key must be a non-empty string")
        self.key = str(self.key)

    @property
    def year(self) -> str:
        """Portion of the date before the first '-', or '' when undated."""
        return self.date.split("-")[0].strip() if self.date else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a Zotero-shaped dictionary."""
        data: Dict[str, Any] = {"key": self.key, "version": self.version}
        for attr, name in _SCALAR_FIELDS.items():
            data[name] = getattr(self, attr)
        data["creators"] = [c.to_dict() for c in self.creators]
        data["tags"] = list(self.tags)
        data["collections"] = list(self.collections)
        for name, value in self.extra_fields.items():
            data.setdefault(name, value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CitationRecord':
        """
        Create a record from Zotero item data.

        Tags may be given as plain strings or as Zotero ``{"tag": ...}``
        objects. Unknown scalar fields are kept in ``extra_fields``; unknown
        nested values (relations and the like) are dropped.
        """
        try:
            version = int(data.get("version") or 0)
        except (TypeError, ValueError):
            version = 0

        kwargs: Dict[str, Any] = {}
        for attr, name in _SCALAR_FIELDS.items():
            value = data.get(name)
            kwargs[attr] = "" if value is None else str(value)

        tags = []
        for tag in data.get("tags") or []:
            if isinstance(tag, dict):
                tag = tag.get("tag")
            if tag is not None and str(tag):
                tags.append(str(tag))

        extra = {
            name: str(value)
            for name, value in data.items()
            if name not in _KNOWN_FIELDS
            and value is not None
            and isinstance(value, (str, int, float, bool))
        }

        return cls(
            key=data.get("key"),
            version=version,
            creators=[Creator.from_dict(c) for c in data.get("creators") or [] if isinstance(c, dict)],
            tags=tags,
            collections=[str(c) for c in data.get("collections") or []],
            extra_fields=extra,
            **kwargs,
        )


@dataclass
class StyledSegment:
    """A run of text with bold/italic flags."""
    text: str
    bold: bool = False
    italic: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "bold": self.bold, "italic": self.italic}


@dataclass
class CitationFormat:
    """A citation template and the delimiter placed between citations."""
    template: str
    delimiter: str = DEFAULT_DELIMITER

    def to_dict(self) -> Dict[str, str]:
        return {"template": self.template, "delimiter": self.delimiter}


@dataclass
class Position:
    """Where a citation sits in a slide's list."""
    index: int
    start_index: int = 0

    @property
    def number(self) -> int:
        return self.index + self.start_index + 1
