"""Bundled policy tables."""
