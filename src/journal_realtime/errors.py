"""
Realtime error types.

An offline recipient is not an error: ``deliver()`` returns False.
"""

from typing import Any, Optional


class RealtimeError(Exception):
    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AuthError(RealtimeError):
    """Missing, malformed or expired credential at connect time."""

    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(code, message)


class TransportError(RealtimeError):
    """Network-level failure to establish or keep a connection."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("transport_error", message, details)


class PersistenceError(RealtimeError):
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__("persistence_error", message, details)


class ConnectionError(RealtimeError):
    def __init__(self, message: str):
        super().__init__("connection_error", message)
