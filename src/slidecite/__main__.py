"""Command line interface: python -m slidecite <command> ..."""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from pptx.exc import PackageNotFoundError

from .abbreviations import JournalAbbreviationService
from .config import Config
from .document import PptxDocument
from .export import save_bibliography_to_word
from .formatting import CitationFormatter
from .models import CitationRecord
from .session import CitationSession
from .utils.error_handling import SlideCiteError
from .utils.logging_setup import setup_logging
from .zotero_client import ZoteroLibrary


def _segments_text(segments) -> str:
    return "".join(s.text for s in segments)


def _open_session(args) -> CitationSession:
    document = PptxDocument.open(args.deck)
    formatter = CitationFormatter()
    if getattr(args, "abbreviations", False):
        formatter = CitationFormatter(JournalAbbreviationService())
    return CitationSession(document, formatter=formatter)


def cmd_list(args) -> int:
    session = _open_session(args)
    slides = session.document.slides()
    numbers = [args.slide] if args.slide else range(1, len(slides) + 1)
    for number in numbers:
        keys = session.index.get_keys(session.slide(number))
        print(f"Slide {number}: {', '.join(keys) if keys else '(none)'}")
        for record in session.citations_on_slide(number):
            print(f"  {record.key}  {record.title or 'Untitled'} ({record.year or 'n.d.'})")
    return 0


def cmd_add(args) -> int:
    if args.record:
        with open(args.record, "r", encoding="utf-8") as f:
            record = CitationRecord.from_dict(json.load(f))
    else:
        record = ZoteroLibrary().get_item(args.key)

    session = _open_session(args)
    session.insert_citation(args.slide, record)
    session.document.save()
    print(f"Added {record.key} to slide {args.slide}")
    return 0


def cmd_remove(args) -> int:
    session = _open_session(args)
    removed = session.remove_citation(args.slide, args.key, prune=not args.no_prune)
    session.document.save()
    if removed:
        print(f"Removed {args.key} from slide {args.slide}")
    else:
        print(f"{args.key} is not cited on slide {args.slide}")
    return 0


def cmd_reorder(args) -> int:
    session = _open_session(args)
    session.reorder(args.slide, args.keys)
    session.document.save()
    print(f"Slide {args.slide}: {', '.join(args.keys)}")
    return 0


def cmd_render(args) -> int:
    session = _open_session(args)
    citation_format = Config.get_citation_format(args.format)
    if args.apply:
        segments = asyncio.run(session.apply_to_slide(args.slide, citation_format))
        session.document.save()
    else:
        segments = asyncio.run(session.render_slide(args.slide, citation_format))
    print(_segments_text(segments))
    return 0


def cmd_prune(args) -> int:
    session = _open_session(args)
    removed = session.prune()
    if removed:
        session.document.save()
    print(f"Pruned {removed} citation(s)")
    return 0


def cmd_describe(args) -> int:
    session = _open_session(args)
    print(json.dumps(session.describe(), indent=2))
    return 0


def cmd_search(args) -> int:
    records = ZoteroLibrary().quick_search(args.query, args.limit)
    if not records:
        print("No matches found.")
        return 0
    for i, record in enumerate(records, 1):
        creators = ", ".join(c.display_name for c in record.creators) or "Unknown"
        print(f"{i}. [{record.key}] {record.title or 'Untitled'} ({record.year or 'n.d.'}) - {creators}")
    return 0


def cmd_export(args) -> int:
    session = _open_session(args)
    citation_format = Config.get_citation_format(args.format)
    path = asyncio.run(save_bibliography_to_word(session, args.output, citation_format))
    print(f"Bibliography saved to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="slidecite", description="Manage citations on PowerPoint slides")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List citations per slide")
    p.add_argument("deck", help="Path to the .pptx file")
    p.add_argument("--slide", type=int, help="Only this slide (1-based)")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("add", help="Attach a citation to a slide")
    p.add_argument("deck")
    p.add_argument("--slide", type=int, required=True)
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument("--key", help="Zotero item key to fetch")
    source.add_argument("--record", help="JSON file with Zotero item data")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("remove", help="Detach a citation from a slide")
    p.add_argument("deck")
    p.add_argument("key")
    p.add_argument("--slide", type=int, required=True)
    p.add_argument("--no-prune", action="store_true", help="Keep the record even if unreferenced")
    p.set_defaults(func=cmd_remove)

    p = sub.add_parser("reorder", help="Set the citation order of a slide")
    p.add_argument("deck")
    p.add_argument("keys", nargs="*")
    p.add_argument("--slide", type=int, required=True)
    p.set_defaults(func=cmd_reorder)

    p = sub.add_parser("render", help="Render a slide's citations")
    p.add_argument("deck")
    p.add_argument("--slide", type=int, required=True)
    p.add_argument("--format", help="Citation format name")
    p.add_argument("--apply", action="store_true", help="Write the text into the slide")
    p.add_argument("--abbreviations", action="store_true", help="Look up journal abbreviations online")
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("prune", help="Remove citations no slide references")
    p.add_argument("deck")
    p.set_defaults(func=cmd_prune)

    p = sub.add_parser("describe", help="Dump stored citation data")
    p.add_argument("deck")
    p.set_defaults(func=cmd_describe)

    p = sub.add_parser("search", help="Search the Zotero library")
    p.add_argument("query")
    p.add_argument("--limit", type=int, help="Maximum results")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("export", help="Export the deck's bibliography to Word")
    p.add_argument("deck")
    p.add_argument("output", help="Path of the .docx file to write")
    p.add_argument("--format", help="Citation format name")
    p.add_argument("--abbreviations", action="store_true")
    p.set_defaults(func=cmd_export)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main program entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(Config.LOG_DIR, Config.LOG_LEVEL)

    try:
        return args.func(args)
    except (SlideCiteError, PackageNotFoundError, KeyError, IndexError, ValueError, OSError) as e:
        logging.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
