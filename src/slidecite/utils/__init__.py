"""Shared utilities: errors, logging, HTTP helpers."""
