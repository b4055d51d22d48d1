"""JSON API over a single deck file."""
import asyncio
import io
import os
import tempfile

from flask import Flask, jsonify, request, send_file
from pptx.exc import PackageNotFoundError

from .config import Config
from .document import PptxDocument
from .export import save_bibliography_to_word
from .models import CitationRecord
from .session import CitationSession
from .utils.error_handling import MalformedTemplateConfig, StoreIOError, ZoteroAPIError
from .utils.rate_limiter import RateLimiter
from .zotero_client import ZOTERO_MAX_CALLS, ZOTERO_PERIOD, ZoteroLibrary

app = Flask(__name__)

# One request window for every worker thread of this process
zotero_limiter = RateLimiter(ZOTERO_MAX_CALLS, ZOTERO_PERIOD)

app.config.update(
    DECK_PATH=os.getenv("SLIDECITE_DECK"),
)

class DeckNotConfigured(Exception):
    pass

def _open_session() -> CitationSession:
    deck_path = app.config.get("DECK_PATH")
    if not deck_path:
        raise DeckNotConfigured("No deck configured (set SLIDECITE_DECK)")
    return CitationSession(PptxDocument.open(deck_path))

@app.errorhandler(DeckNotConfigured)
def deck_not_configured(e):
    return jsonify({"error": str(e)}), 503

@app.errorhandler(PackageNotFoundError)
def deck_not_found(e):
    app.logger.error(f"Deck could not be opened: {str(e)}")
    return jsonify({"error": f"Deck could not be opened: {str(e)}"}), 503

@app.errorhandler(StoreIOError)
def store_error(e):
    app.logger.error(f"Store error: {str(e)}")
    return jsonify({"error": str(e)}), 500

@app.errorhandler(MalformedTemplateConfig)
def malformed_format(e):
    return jsonify({"error": str(e)}), 400

@app.errorhandler(ValueError)
def bad_value(e):
    return jsonify({"error": str(e)}), 400

@app.errorhandler(KeyError)
def unknown_name(e):
    return jsonify({"error": str(e.args[0]) if e.args else str(e)}), 404

@app.errorhandler(IndexError)
def unknown_slide(e):
    return jsonify({"error": str(e)}), 404

@app.errorhandler(ZoteroAPIError)
def zotero_error(e):
    return jsonify({"error": str(e)}), 502

@app.route("/api/slides", methods=["GET"])
def list_slides():
    session = _open_session()
    slides = []
    for number, slide in enumerate(session.document.slides(), start=1):
        slides.append({
            "number": number,
            "slide_id": slide.slide_id,
            "keys": session.index.get_keys(slide),
        })
    return jsonify({"slides": slides})

@app.route("/api/slides/<int:number>/citations", methods=["GET"])
def slide_citations(number):
    session = _open_session()
    records = session.citations_on_slide(number)
    return jsonify({"citations": [r.to_dict() for r in records]})

@app.route("/api/slides/<int:number>/citations", methods=["POST"])
def add_citation(number):
    """Body: Zotero item data, or {"key": ...} to fetch the item from Zotero."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Expected a JSON object"}), 400

    if set(data) == {"key"}:
        record = ZoteroLibrary(rate_limiter=zotero_limiter).get_item(data["key"])
    else:
        record = CitationRecord.from_dict(data)

    session = _open_session()
    session.insert_citation(number, record)
    session.document.save()
    app.logger.info(f"Citation {record.key} added to slide {number}")
    return jsonify({"key": record.key, "keys": session.index.get_keys(session.slide(number))}), 201

@app.route("/api/slides/<int:number>/citations/<key>", methods=["DELETE"])
def remove_citation(number, key):
    prune = request.args.get("prune", "true").lower() not in ("0", "false", "no")
    session = _open_session()
    removed = session.remove_citation(number, key, prune=prune)
    session.document.save()
    return jsonify({"removed": removed, "keys": session.index.get_keys(session.slide(number))})

@app.route("/api/slides/<int:number>/order", methods=["PUT"])
def reorder(number):
    data = request.get_json(silent=True) or {}
    keys = data.get("keys")
    if not isinstance(keys, list):
        return jsonify({"error": "Expected {\"keys\": [...]}"}), 400

    session = _open_session()
    session.reorder(number, [str(k) for k in keys])
    session.document.save()
    return jsonify({"keys": session.index.get_keys(session.slide(number))})

@app.route("/api/slides/<int:number>/render", methods=["GET", "POST"])
def render(number):
    """GET renders; POST also writes the text into the slide."""
    citation_format = Config.get_citation_format(request.args.get("format"))
    session = _open_session()
    if request.method == "POST":
        segments = asyncio.run(session.apply_to_slide(number, citation_format))
        session.document.save()
    else:
        segments = asyncio.run(session.render_slide(number, citation_format))
    return jsonify({
        "text": "".join(s.text for s in segments),
        "segments": [s.to_dict() for s in segments],
    })

@app.route("/api/prune", methods=["POST"])
def prune():
    session = _open_session()
    removed = session.prune()
    if removed:
        session.document.save()
    return jsonify({"removed": removed})

@app.route("/api/describe", methods=["GET"])
def describe():
    return jsonify(_open_session().describe())

@app.route("/api/search", methods=["GET"])
def search():
    query = request.args.get("q", "").strip()
    if not query:
        return jsonify({"error": "Missing query parameter 'q'"}), 400
    limit = request.args.get("limit", type=int)
    records = ZoteroLibrary(rate_limiter=zotero_limiter).quick_search(query, limit)
    return jsonify({"results": [r.to_dict() for r in records]})

@app.route("/api/export", methods=["GET"])
def export():
    citation_format = Config.get_citation_format(request.args.get("format"))
    session = _open_session()
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "references.docx")
        asyncio.run(save_bibliography_to_word(session, path, citation_format))
        with open(path, "rb") as f:
            content = io.BytesIO(f.read())
    return send_file(
        content,
        mimetype="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        as_attachment=True,
        download_name="references.docx",
    )
