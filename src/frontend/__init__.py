"""Textual UI for commitscope."""
