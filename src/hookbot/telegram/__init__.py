"""Telegram Bot API wire models, client and webhook dispatch."""
