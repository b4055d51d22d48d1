"""
DEVELOPMENT ENTRY POINT

This is the canonical entry point for local development.
For production deployments, use: wsgi.py

Runs the JSON API with debug mode enabled against the deck named by
SLIDECITE_DECK.
"""
from slidecite.config import Config
from slidecite.utils.logging_setup import setup_logging
from slidecite.web import app

if __name__ == "__main__":
    setup_logging(Config.LOG_DIR, Config.LOG_LEVEL)
    app.run(debug=True)
