"""Error types raised across the core and its adapters."""

from __future__ import annotations


class RetentionError(Exception):
    """Base class for every error raised by ephemera."""


class ConfigError(RetentionError):
    """Missing or malformed startup configuration."""


class FetchError(RetentionError):
    """A history page could not be fetched from the message store."""


class DeleteError(RetentionError):
    """A message could not be deleted."""

    def __init__(self, message_id: int, reason: str) -> None:
        super().__init__(f"message {message_id}: {reason}")
        self.message_id = message_id
        self.reason = reason


class MessageNotFound(DeleteError):
    """The message is already gone; callers treat this as benign."""

    def __init__(self, message_id: int, reason: str = "not found") -> None:
        super().__init__(message_id, reason)
