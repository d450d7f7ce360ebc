"""Relay - bridge Telegram chats to a local coding assistant."""

__version__ = "0.1.0"
