"""Telegram bot front-end."""
