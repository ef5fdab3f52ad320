"""Error types raised by askcli.

Storage denial is reported with the built-in PermissionError.
"""


class AskError(Exception):
    """Base class for errors surfaced to the user."""


class ConfigurationError(AskError):
    """Raised when required configuration or a host capability is missing."""


class CorruptSessionError(AskError):
    """Raised when a stored session cannot be parsed into a record."""

    def __init__(self, session_id: str, reason: str):
        super().__init__(f"Session {session_id} is corrupt: {reason}")
        self.session_id = session_id
        self.reason = reason


class EmptyConversationError(AskError):
    """Raised when a conversation unexpectedly has no messages."""


class TransportError(AskError):
    """Raised when the model service cannot be reached or answers badly."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def diagnostic(self) -> str:
        """Full diagnostic including the raw response body, if any."""
        parts = [str(self)]
        if self.status_code is not None:
            parts.append(f"Status: {self.status_code}")
        if self.body:
            parts.append(f"Response:\n{self.body}")
        return "\n".join(parts)
