"""Shared constants for the Textual UI."""

from __future__ import annotations

ACCENT = "#2AABEE"
TIME_FORMAT = "%Y-%m-%d %H:%M"
