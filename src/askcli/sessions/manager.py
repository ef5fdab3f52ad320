"""File-backed session store for conversation persistence.

Design decisions:
1. One JSON file per session, named {prefix}{owner_id}. The owner id is the
   parent process (the shell) so every terminal gets its own conversation.

2. Full-file rewrites: a record is always written to a temp file in the same
   directory and moved into place with os.replace, so a reader never sees a
   half-written record. A crash can still leave garbage behind from older
   versions or other tools, which load() reports as CorruptSessionError.

3. Explicit context: the storage directory, prefix and owner id travel in a
   SessionContext value instead of being read from the environment.

File format:
    {"model": "gpt-4o", "messages": [{"role": "...", "content": ...}, ...]}

where content is either a string or a list of typed parts.
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from askcli.errors import CorruptSessionError

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "ask_transcript-"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# ── Message content ────────────────────────────────────

@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    url: str
    detail: str = "high"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url, "detail": self.detail}}


ContentPart = TextPart | ImagePart


def _part_from_dict(d: dict[str, Any]) -> ContentPart:
    kind = d["type"]
    if kind == "text":
        return TextPart(text=str(d["text"]))
    if kind == "image_url":
        image = d["image_url"]
        return ImagePart(url=image["url"], detail=image.get("detail", "high"))
    raise ValueError(f"unknown content part type: {kind!r}")


@dataclass(frozen=True)
class TextContent:
    """Plain string content."""
    text: str

    def to_json(self) -> str:
        return self.text

    def preview_text(self) -> str:
        return self.text


@dataclass(frozen=True)
class MultiPartContent:
    """Ordered content parts, e.g. a prompt plus a clipboard image."""
    parts: tuple[ContentPart, ...]

    def to_json(self) -> list[dict[str, Any]]:
        return [part.to_dict() for part in self.parts]

    def preview_text(self) -> str:
        for part in self.parts:
            if isinstance(part, TextPart):
                return part.text
        return ""


Content = TextContent | MultiPartContent


def content_from_json(raw: Any) -> Content:
    if isinstance(raw, str):
        return TextContent(raw)
    if isinstance(raw, list):
        return MultiPartContent(tuple(_part_from_dict(p) for p in raw))
    raise TypeError(f"content must be a string or a list, got {type(raw).__name__}")


@dataclass(frozen=True)
class Message:
    """A message in a session."""
    role: Role
    content: Content

    @classmethod
    def text(cls, role: Role | str, text: str) -> "Message":
        return cls(role=Role(role), content=TextContent(text))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"role": self.role.value, "content": self.content.to_json()}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Message":
        return cls(role=Role(d["role"]), content=content_from_json(d["content"]))


# ── Records ────────────────────────────────────────────

@dataclass
class SessionRecord:
    """One saved conversation.

    messages[0] is always the instruction preamble; index 1, if present, is
    the first user turn.
    """

    path: Path
    model: str
    messages: list[Message] = field(default_factory=list)

    @property
    def session_id(self) -> str:
        return self.path.name

    @property
    def message_count(self) -> int:
        return len(self.messages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, path: Path, d: dict[str, Any]) -> "SessionRecord":
        if not isinstance(d, dict):
            raise TypeError("session must be a JSON object")
        messages = d["messages"]
        if not isinstance(messages, list):
            raise TypeError("messages must be a list")
        if not messages:
            raise ValueError("session has no messages")
        return cls(
            path=path,
            model=str(d["model"]),
            messages=[Message.from_dict(m) for m in messages],
        )


@dataclass(frozen=True)
class SessionContext:
    """Where sessions live and which one belongs to this process."""

    directory: Path
    owner_id: str
    prefix: str = DEFAULT_PREFIX

    @classmethod
    def current(cls, directory: Path | None = None, prefix: str = DEFAULT_PREFIX) -> "SessionContext":
        """Context owned by the parent process (normally the user's shell)."""
        return cls(
            directory=directory or Path(tempfile.gettempdir()),
            owner_id=str(os.getppid()),
            prefix=prefix,
        )

    @property
    def active_id(self) -> str:
        return f"{self.prefix}{self.owner_id}"

    @property
    def active_path(self) -> Path:
        return self.directory / self.active_id


# ── Store ──────────────────────────────────────────────

class SessionStore:
    """Stores one JSON file per session in the context's directory.

    Usage:
        store = SessionStore(SessionContext.current())
        for session_id in store.list():
            record = store.load(session_id)
    """

    def __init__(self, context: SessionContext):
        self.context = context
        self.directory = context.directory

    def path_for(self, session_id: str) -> Path:
        return self.directory / session_id

    def exists(self, session_id: str) -> bool:
        return self.path_for(session_id).is_file()

    def list(self) -> list[str]:
        """List session ids in directory enumeration order (not sorted)."""
        if not self.directory.is_dir():
            return []
        return [
            name for name in os.listdir(self.directory)
            if name.startswith(self.context.prefix) and self.path_for(name).is_file()
        ]

    def load(self, session_id: str) -> SessionRecord:
        """Load a session.

        Raises:
            FileNotFoundError: If the session does not exist.
            CorruptSessionError: If the file is not a valid session.
        """
        path = self.path_for(session_id)
        raw = path.read_bytes()
        try:
            return SessionRecord.from_dict(path, json.loads(raw.decode("utf-8")))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CorruptSessionError(session_id, str(e)) from e

    def save(self, record: SessionRecord) -> None:
        """Atomically rewrite the record's file."""
        data = json.dumps(record.to_dict()).encode("utf-8")
        self._write_atomic(record.path, data)
        logger.debug(f"Saved {record.session_id} ({record.message_count} messages)")

    def delete(self, session_id: str) -> bool:
        """Delete a session file.

        Returns:
            True if deleted, False if it was missing or removal was denied.
        """
        path = self.path_for(session_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not delete session {session_id}: {e}")
            return False
        logger.info(f"Deleted session {session_id}")
        return True

    def promote(self, session_id: str) -> None:
        """Copy a session into this process's active slot, replacing it."""
        if session_id == self.context.active_id:
            return
        data = self.path_for(session_id).read_bytes()
        self._write_atomic(self.context.active_path, data)
        logger.info(f"Promoted {session_id} to {self.context.active_id}")

    def read_preview(self, session_id: str, width: int = 64) -> str:
        """First line of the session's first user turn, truncated to width."""
        try:
            record = self.load(session_id)
        except (CorruptSessionError, OSError) as e:
            logger.debug(f"Preview failed for {session_id}: {e}")
            return "<unreadable session>"
        if len(record.messages) < 2:
            return "(no messages yet)"
        text = record.messages[1].content.preview_text()
        return text.split("\n")[0][:width]

    def _write_atomic(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Dot-prefixed so list() never picks up a half-written temp file
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise
