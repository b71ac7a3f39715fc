"""Adapters binding the core ports to GitHub, Telegram, OpenAI, and storage."""
