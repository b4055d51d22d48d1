"""Tests for journal abbreviation lookup."""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from slidecite.abbreviations import (
    JournalAbbreviationService,
    build_abbreviation_map,
    parse_medline,
)

SAMPLE_MEDLINE = """--------------------------------------------------------
JrId: 1
JournalTitle: AADE editors' journal
MedAbbr: AADE Ed J
ISSN (Print): 0160-6999
ISSN (Online):
IsoAbbr: AADE Ed J
NlmId: 7708172
--------------------------------------------------------
JrId: 2
JournalTitle: The New England Journal of Medicine
MedAbbr: N Engl J Med
ISSN (Print): 0028-4793
ISSN (Online): 1533-4406
IsoAbbr: N. Engl. J. Med.
NlmId: 0255562
--------------------------------------------------------
JrId: 3
JournalTitle: Journal: A Colon Study
MedAbbr: J Colon Stud
NlmId: 0000003
"""


class TestParseMedline:

    def test_entries(self):
        entries = parse_medline(SAMPLE_MEDLINE)
        assert len(entries) == 3
        assert entries[1]["JournalTitle"] == "The New England Journal of Medicine"
        assert entries[1]["MedAbbr"] == "N Engl J Med"
        assert entries[1]["IsoAbbr"] == "N. Engl. J. Med."
        assert entries[0]["ISSN (Online)"] == ""

    def test_value_with_colon(self):
        entries = parse_medline(SAMPLE_MEDLINE)
        assert entries[2]["JournalTitle"] == "Journal: A Colon Study"

    def test_iso_field_spelling(self):
        entries = parse_medline("JournalTitle: X\nISOAbbr: X Abbr\n")
        assert entries == [{"JournalTitle": "X", "IsoAbbr": "X Abbr"}]

    def test_maps_by_mode(self):
        entries = parse_medline(SAMPLE_MEDLINE)
        med = build_abbreviation_map(entries, "MedAbbr")
        iso = build_abbreviation_map(entries, "IsoAbbr")
        assert med["the new england journal of medicine"] == "N Engl J Med"
        assert iso["the new england journal of medicine"] == "N. Engl. J. Med."
        assert "journal: a colon study" not in iso


@pytest.fixture
def service():
    service = JournalAbbreviationService(url="http://example.test/J_Medline.txt", cache_ttl=60, mode="MedAbbr")
    with patch.object(service, "_fetch_text", new=AsyncMock(return_value=SAMPLE_MEDLINE)):
        yield service


class TestJournalAbbreviationService:

    def test_lookup_case_insensitive(self, service):
        assert asyncio.run(service.lookup("the NEW england journal of medicine")) == "N Engl J Med"

    def test_lookup_iso_mode(self, service):
        assert asyncio.run(service.lookup("The New England Journal of Medicine", mode="isoabbr")) == "N. Engl. J. Med."

    def test_unknown_and_empty_titles(self, service):
        assert asyncio.run(service.lookup("Unknown Journal")) is None
        assert asyncio.run(service.lookup("")) is None
        assert asyncio.run(service.lookup(None)) is None

    def test_callable_as_formatter_lookup(self, service):
        assert asyncio.run(service("The New England Journal of Medicine")) == "N Engl J Med"

    def test_download_cached(self, service):
        async def run():
            await service.lookup("The New England Journal of Medicine")
            await service.lookup("AADE editors' journal", mode="IsoAbbr")
        asyncio.run(run())
        assert service._fetch_text.await_count == 1

    def test_cache_expires(self, service):
        with patch("slidecite.abbreviations.time.time", return_value=1000.0):
            asyncio.run(service.get_entries())
        with patch("slidecite.abbreviations.time.time", return_value=1030.0):
            asyncio.run(service.get_entries())
        assert service._fetch_text.await_count == 1
        with patch("slidecite.abbreviations.time.time", return_value=1061.0):
            asyncio.run(service.get_entries())
        assert service._fetch_text.await_count == 2

    def test_clear_cache(self, service):
        asyncio.run(service.get_entries())
        service.clear_cache()
        asyncio.run(service.get_entries())
        assert service._fetch_text.await_count == 2

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            JournalAbbreviationService(mode="Bogus")

    def test_download_error_propagates(self):
        service = JournalAbbreviationService(url="http://example.test/J_Medline.txt")
        with patch.object(service, "_fetch_text", new=AsyncMock(side_effect=OSError("offline"))):
            with pytest.raises(OSError):
                asyncio.run(service.lookup("Nature"))
