"""
Document-wide citation store.

All records of a document live in one custom XML block. Nothing is cached:
every read parses the block again, and every mutation reads the whole
block, changes it in memory and writes it back as a single unit.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from .config import CITATION_XML_NAMESPACE, CITATION_XML_ROOT, STORE_VERSION
from .document.base import DocumentHost
from .models import CitationRecord
from .utils.error_handling import store_io_handler
from .xml_codec import build_store, parse_store

logger = logging.getLogger(__name__)


class CitationStore:
    """
    De-duplicated key -> record map for one document.

    Thread-safety note:
        Each mutation is a read-modify-write of the whole block with no
        version check, so concurrent writers lose updates (last writer
        wins). Callers must serialize mutating calls.
    """

    def __init__(self, document: DocumentHost,
                 namespace: str = CITATION_XML_NAMESPACE,
                 root_name: str = CITATION_XML_ROOT):
        self.document = document
        self.namespace = namespace
        self.root_name = root_name

    def _read_raw(self) -> List[Dict[str, Any]]:
        xml = self.document.read_custom_xml(self.namespace)
        if xml is None:
            return []
        store = parse_store(xml, self.namespace, self.root_name)
        version = str(store["version"]).strip()
        if version and version != str(STORE_VERSION):
            raise ValueError(f"Unsupported citation store version: {version}")
        return store["citations"]

    def _write_raw(self, records: List[Dict[str, Any]]) -> None:
        xml = build_store(records, self.namespace, self.root_name, STORE_VERSION)
        self.document.write_custom_xml(self.namespace, xml)

    def _load_records(self) -> Dict[str, CitationRecord]:
        records: Dict[str, CitationRecord] = {}
        for data in self._read_raw():
            try:
                record = CitationRecord.from_dict(data)
            except ValueError:
                logger.warning("Skipping stored citation without a key")
                continue
            records[record.key] = record
        return records

    @store_io_handler("add citation")
    def upsert(self, record: CitationRecord) -> None:
        """Insert a record, replacing any record with the same key."""
        records = [r for r in self._read_raw() if str(r.get("key")) != record.key]
        records.append(record.to_dict())
        self._write_raw(records)
        logger.info(f"Citation added: {record.key}")

    @store_io_handler("read citations")
    def get_all(self) -> Dict[str, CitationRecord]:
        return self._load_records()

    @store_io_handler("read citation")
    def get(self, key: str) -> Optional[CitationRecord]:
        return self._load_records().get(str(key))

    @store_io_handler("read citations")
    def get_many(self, keys: Iterable[str]) -> List[Optional[CitationRecord]]:
        """Look up keys in order; unknown keys give None."""
        records = self._load_records()
        return [records.get(str(key)) for key in keys]

    @store_io_handler("remove citation")
    def remove(self, key: str) -> bool:
        """Remove a record. Returns True if it existed; nothing is written otherwise."""
        key = str(key)
        current = self._read_raw()
        remaining = [r for r in current if str(r.get("key")) != key]
        if len(remaining) == len(current):
            return False
        self._write_raw(remaining)
        logger.info(f"Citation removed: {key}")
        return True

    @store_io_handler("prune citations")
    def retain(self, keys: Iterable[str]) -> int:
        """
        Drop every record whose key is not in ``keys``.

        Returns the number of records removed. The block is written only
        when something was removed.
        """
        keep = {str(k) for k in keys}
        current = self._read_raw()
        remaining = [r for r in current if str(r.get("key")) in keep]
        removed = len(current) - len(remaining)
        if removed:
            self._write_raw(remaining)
        return removed

    @store_io_handler("clear citations")
    def clear(self) -> None:
        """Delete the whole persisted block."""
        if self.document.delete_custom_xml(self.namespace):
            logger.info("Citation store cleared")
