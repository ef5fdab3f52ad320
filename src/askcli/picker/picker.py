"""Interactive session picker.

A single-selection list over the saved sessions:

    Up / Down   move the selection (clamped, never wraps)
    Enter       copy the selected session into this shell's active slot
    D / Delete  delete the selected session
    Ctrl+C      quit without changes

The candidate list is built from storage when the picker starts and thrown
away when it exits.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from rich.console import Console
from rich.text import Text

from askcli.picker.keys import Key, KeyCommand
from askcli.sessions.manager import SessionStore

logger = logging.getLogger(__name__)

HELP_LINE = "RETURN - Select | D - Delete | CTRL+C - Quit"
EMPTY_MESSAGE = "No conversations to manage!"
SELECTED_STYLE = "reverse"


class PickerState(str, Enum):
    EMPTY = "empty"
    BROWSING = "browsing"


class PickerOutcome(str, Enum):
    PROMOTED = "promoted"
    EMPTY = "empty"
    INTERRUPTED = "interrupted"


@dataclass
class CandidateEntry:
    """A session shown in the picker. Content is loaded lazily for display."""
    session_id: str
    selected: bool = False


class SessionPicker:
    """State machine behind `ask -o`.

    Usage:
        picker = SessionPicker(store)
        with raw_mode() as fd:
            outcome = picker.run(KeyInputReader(fd).commands())
    """

    def __init__(
        self,
        store: SessionStore,
        console: Console | None = None,
        preview_width: int = 64,
    ):
        self.store = store
        self.console = console or Console()
        self.preview_width = preview_width
        self.candidates: list[CandidateEntry] = [
            CandidateEntry(session_id) for session_id in store.list()
        ]
        self.promoted: str | None = None
        self.status: str | None = None
        if self.candidates:
            self._select(0)

    # ── State ──────────────────────────────────────────

    @property
    def state(self) -> PickerState:
        return PickerState.BROWSING if self.candidates else PickerState.EMPTY

    @property
    def index(self) -> int | None:
        """Index of the selected entry, or None when the list is empty."""
        for i, entry in enumerate(self.candidates):
            if entry.selected:
                return i
        return None

    @property
    def selected(self) -> CandidateEntry | None:
        i = self.index
        return None if i is None else self.candidates[i]

    def _select(self, index: int) -> None:
        for i, entry in enumerate(self.candidates):
            entry.selected = i == index

    # ── Transitions ────────────────────────────────────

    def handle(self, command: KeyCommand) -> PickerOutcome | None:
        """Apply one command. Returns an outcome when the picker is done."""
        if self.state is PickerState.EMPTY:
            return PickerOutcome.EMPTY

        i = self.index
        n = len(self.candidates)

        if command.key is Key.UP:
            if i > 0:
                self._select(i - 1)
        elif command.key is Key.DOWN:
            if i < n - 1:
                self._select(i + 1)
        elif command.key is Key.ENTER:
            session_id = self.candidates[i].session_id
            self.store.promote(session_id)
            self.promoted = session_id
            return PickerOutcome.PROMOTED
        elif command.key is Key.DELETE:
            self._delete(i)
            if self.state is PickerState.EMPTY:
                return PickerOutcome.EMPTY
        elif command.key is Key.INTERRUPT:
            return PickerOutcome.INTERRUPTED
        return None

    def _delete(self, index: int) -> None:
        session_id = self.candidates[index].session_id
        if self.store.delete(session_id):
            del self.candidates[index]
            if self.candidates:
                self._select(min(index, len(self.candidates) - 1))
            self.status = None
            return

        # Storage refused or the file was already gone: trust the disk
        self._resync(keep=session_id, fallback=index)
        if any(entry.session_id == session_id for entry in self.candidates):
            self.status = f"Could not delete {session_id}"
        else:
            self.status = None

    def _resync(self, keep: str, fallback: int) -> None:
        ids = self.store.list()
        self.candidates = [CandidateEntry(session_id) for session_id in ids]
        if not ids:
            return
        if keep in ids:
            self._select(ids.index(keep))
        else:
            self._select(min(fallback, len(ids) - 1))
        logger.debug(f"Picker re-synced with storage: {len(ids)} sessions")

    # ── Rendering ──────────────────────────────────────

    def render(self) -> None:
        self.console.clear()
        self.console.print(HELP_LINE, style="bold", highlight=False)
        for entry in self.candidates:
            preview = self.store.read_preview(entry.session_id, self.preview_width)
            line = Text(f"{self.store.path_for(entry.session_id)} => {preview}")
            if entry.selected:
                line.stylize(SELECTED_STYLE)
            self.console.print(line)
        if self.status:
            self.console.print(Text(self.status, style="yellow"))

    def run(self, commands: Iterable[KeyCommand]) -> PickerOutcome:
        """Render, read, apply; until a command ends the picker."""
        stream = iter(commands)
        while True:
            if self.state is PickerState.EMPTY:
                self.console.clear()
                self.console.print(EMPTY_MESSAGE)
                return PickerOutcome.EMPTY

            self.render()
            command = next(stream, None)
            if command is None:
                return PickerOutcome.INTERRUPTED
            outcome = self.handle(command)
            if outcome is PickerOutcome.EMPTY:
                continue
            if outcome is not None:
                return outcome
