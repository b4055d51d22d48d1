"""Tests for citation template rendering."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from slidecite.formatting import (
    CitationFormatter,
    format_creators,
    parse_markup,
    validate_citation_format,
    validate_citation_formats,
)
from slidecite.models import CitationFormat, CitationRecord, Creator, Position, StyledSegment
from slidecite.utils.error_handling import MalformedTemplateConfig


def _render(formatter, *args, **kwargs):
    return asyncio.run(formatter.format(*args, **kwargs))


def _render_many(formatter, *args, **kwargs):
    return asyncio.run(formatter.format_many(*args, **kwargs))


def _text(segments):
    return "".join(s.text for s in segments)


class TestCreatorRule:

    def test_no_creators(self):
        assert format_creators([]) == "Unknown"

    def test_one_creator(self):
        assert format_creators([Creator(last_name="Smith")]) == "Smith"

    def test_two_creators(self):
        assert format_creators([Creator(last_name="Smith"), Creator(last_name="Jones")]) == "Smith and Jones"

    def test_three_or_more(self):
        creators = [Creator(last_name=n) for n in ("Smith", "Jones", "Brown")]
        assert format_creators(creators) == "Smith et al."

    def test_institutional_and_anonymous(self):
        assert format_creators([Creator(name="WHO"), Creator()]) == "WHO and Anonymous"


class TestParseMarkup:

    def test_plain_text(self):
        assert parse_markup("hello") == [StyledSegment("hello")]

    def test_bold_then_plain(self):
        assert parse_markup("<b>Bold</b> plain") == [
            StyledSegment("Bold", bold=True),
            StyledSegment(" plain"),
        ]

    def test_interleaved_tags(self):
        assert parse_markup("<b>a<i>b</b>c</i>d") == [
            StyledSegment("a", bold=True),
            StyledSegment("b", bold=True, italic=True),
            StyledSegment("c", italic=True),
            StyledSegment("d"),
        ]

    def test_case_insensitive_and_empty_runs_dropped(self):
        assert parse_markup("<B></B><I>x</I>") == [StyledSegment("x", italic=True)]

    def test_adjacent_same_style_merged(self):
        assert parse_markup("a</b>b") == [StyledSegment("ab")]

    def test_empty_string(self):
        assert parse_markup("") == []

    def test_other_tags_untouched(self):
        assert parse_markup("<u>x</u>") == [StyledSegment("<u>x</u>")]


class TestFormat:

    def test_author_year(self, record_factory):
        record = record_factory("K1", last_names=("Smith",), date="2020-05-01")
        segments = _render(CitationFormatter(), record, CitationFormat("{creator} ({year})"))
        assert segments == [StyledSegment("Smith (2020)")]

    def test_styled_template(self, record_factory):
        record = record_factory("K1", last_names=("Smith", "Jones"), volume="12")
        segments = _render(CitationFormatter(), record, {"template": "{creator}, <b>{volume}</b>"})
        assert segments == [StyledSegment("Smith and Jones, "), StyledSegment("12", bold=True)]

    def test_fallbacks(self):
        record = CitationRecord(key="K1")
        segments = _render(CitationFormatter(), record, CitationFormat("{title}|{year}|{date}|{creator}|{creators}|{journal}"))
        assert _text(segments) == "Untitled|n.d.|n.d.|Unknown|Unknown|"

    def test_all_placeholders(self, sample_record):
        template = "{key}|{shortTitle}|{creators}|{volume}|{pages}|{doi}|{itemType}|{url}"
        text = _text(_render(CitationFormatter(), sample_record, CitationFormat(template)))
        assert text == (
            "ABCD1234|Attention|Vaswani, Shazeer|30|5998-6008|10.5555/3295222.3295349"
            "|journalArticle|https://arxiv.org/abs/1706.03762"
        )

    def test_unknown_placeholder_left_alone(self, record_factory):
        text = _text(_render(CitationFormatter(), record_factory("K1"), CitationFormat("{nope} {year}")))
        assert text == "{nope} 2020"

    def test_number_needs_position(self, record_factory):
        record = record_factory("K1")
        fmt = CitationFormat("[{#}]")
        assert _text(_render(CitationFormatter(), record, fmt)) == "[{#}]"
        assert _text(_render(CitationFormatter(), record, fmt, Position(1, start_index=3))) == "[5]"

    def test_format_alias(self, record_factory):
        text = _text(_render(CitationFormatter(), record_factory("K1"), {"format": "{year}"}))
        assert text == "2020"


class TestJournalAbbreviation:

    def test_record_abbreviation_used(self, record_factory):
        lookup = AsyncMock(return_value="Other")
        record = record_factory("K1", publicationTitle="Journal of Testing", journalAbbreviation="J Test")
        text = _text(_render(CitationFormatter(lookup), record, CitationFormat("{journalAbbr}")))
        assert text == "J Test"
        lookup.assert_not_called()

    def test_lookup_when_missing(self, record_factory):
        lookup = AsyncMock(return_value="J Test")
        record = record_factory("K1", publicationTitle="Journal of Testing")
        text = _text(_render(CitationFormatter(lookup), record, CitationFormat("{journalAbbr}")))
        assert text == "J Test"
        lookup.assert_awaited_once_with("Journal of Testing")

    def test_abbreviation_equal_to_title_triggers_lookup(self, record_factory):
        lookup = AsyncMock(return_value="Nature Abbr")
        record = record_factory("K1", publicationTitle="Nature", journalAbbreviation="Nature")
        assert _text(_render(CitationFormatter(lookup), record, CitationFormat("{journalAbbr}"))) == "Nature Abbr"

    def test_lookup_not_called_without_placeholder(self, record_factory):
        lookup = AsyncMock(return_value="J Test")
        record = record_factory("K1", publicationTitle="Journal of Testing")
        _render(CitationFormatter(lookup), record, CitationFormat("{journal}"))
        lookup.assert_not_called()

    def test_lookup_miss_falls_back_to_title(self, record_factory):
        lookup = AsyncMock(return_value=None)
        record = record_factory("K1", publicationTitle="Journal of Testing")
        assert _text(_render(CitationFormatter(lookup), record, CitationFormat("{journalAbbr}"))) == "Journal of Testing"

    def test_lookup_error_falls_back_to_title(self, record_factory):
        lookup = AsyncMock(side_effect=RuntimeError("offline"))
        record = record_factory("K1", publicationTitle="Journal of Testing")
        assert _text(_render(CitationFormatter(lookup), record, CitationFormat("{journalAbbr}"))) == "Journal of Testing"

    def test_no_lookup_configured(self, record_factory):
        record = record_factory("K1", publicationTitle="Journal of Testing")
        assert _text(_render(CitationFormatter(), record, CitationFormat("{journalAbbr}"))) == "Journal of Testing"


class TestFormatMany:

    def test_numbering_and_delimiters(self, record_factory):
        records = [record_factory(k, last_names=(n,)) for k, n in (("K1", "A"), ("K2", "B"), ("K3", "C"))]
        segments = _render_many(CitationFormatter(), records, CitationFormat("[{#}] {creator}", "; "))
        assert _text(segments) == "[1] A; [2] B; [3] C"
        assert [s.text for s in segments] == ["[1] A", "; ", "[2] B", "; ", "[3] C"]

    def test_start_index(self, record_factory):
        records = [record_factory("K1"), record_factory("K2")]
        text = _text(_render_many(CitationFormatter(), records, CitationFormat("{#}", ","), start_index=4))
        assert text == "5,6"

    def test_missing_records_skipped_without_number(self, record_factory):
        records = [record_factory("K1"), None, record_factory("K3")]
        text = _text(_render_many(CitationFormatter(), records, CitationFormat("[{#}]", " ")))
        assert text == "[1] [2]"

    def test_default_delimiter(self, record_factory):
        records = [record_factory("K1", last_names=("A",)), record_factory("K2", last_names=("B",))]
        text = _text(_render_many(CitationFormatter(), records, {"template": "{creator}"}))
        assert text == "A;  B"

    def test_empty_input(self):
        assert _render_many(CitationFormatter(), [], CitationFormat("{title}")) == []

    def test_delimiter_is_unstyled(self, record_factory):
        records = [record_factory("K1"), record_factory("K2")]
        segments = _render_many(CitationFormatter(), records, CitationFormat("<b>{key}</b>", " | "))
        assert segments[1] == StyledSegment(" | ")
        assert segments[0].bold and segments[2].bold


class TestValidation:

    def test_valid_dict(self):
        fmt = validate_citation_format({"template": "{title}", "delimiter": ", "})
        assert fmt == CitationFormat("{title}", ", ")

    def test_default_delimiter(self):
        assert validate_citation_format({"template": "{title}"}).delimiter == ";  "

    @pytest.mark.parametrize("bad", [
        {},
        {"delimiter": ", "},
        {"template": 5},
        {"template": "{title}", "delimiter": None},
        "not an object",
    ])
    def test_invalid(self, bad):
        with pytest.raises(MalformedTemplateConfig):
            validate_citation_format(bad)

    def test_malformed_format_rejected_before_render(self, record_factory):
        with pytest.raises(MalformedTemplateConfig):
            _render(CitationFormatter(), record_factory("K1"), {"delimiter": ","})

    def test_formats_mapping(self):
        formats = validate_citation_formats({"a": {"template": "{year}"}})
        assert formats["a"].template == "{year}"
        with pytest.raises(MalformedTemplateConfig, match="'b'"):
            validate_citation_formats({"b": {"template": 1}})
        with pytest.raises(MalformedTemplateConfig):
            validate_citation_formats(["not", "a", "mapping"])
