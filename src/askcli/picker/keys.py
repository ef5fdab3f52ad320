"""Raw keyboard input for the session picker.

The terminal is switched to raw mode (no line buffering, no echo, no signal
keys) for the lifetime of a `raw_mode()` block, and restored on every way
out of it: normal return, exceptions, Ctrl+C and SIGTERM/SIGHUP.

Bytes read from the terminal are decoded into KeyCommands. Multi-byte
escape sequences are matched as whole units; an incomplete sequence is held
back until the rest arrives or ESCAPE_TIMEOUT passes.
"""

import contextlib
import logging
import os
import select
import signal
import sys
import termios
import tty
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from askcli.errors import ConfigurationError

logger = logging.getLogger(__name__)

ESCAPE_TIMEOUT = 0.05  # seconds to wait for the rest of an escape sequence
READ_SIZE = 64
MAX_CSI_LENGTH = 16


class Key(str, Enum):
    UP = "up"
    DOWN = "down"
    ENTER = "enter"
    DELETE = "delete"
    INTERRUPT = "interrupt"
    LITERAL = "literal"


@dataclass(frozen=True)
class KeyCommand:
    key: Key
    data: bytes = b""


SEQUENCES: dict[bytes, Key] = {
    b"\x1b[A": Key.UP,
    b"\x1bOA": Key.UP,
    b"\x1b[B": Key.DOWN,
    b"\x1bOB": Key.DOWN,
    b"\x1b[3~": Key.DELETE,
    b"\r": Key.ENTER,
    b"\n": Key.ENTER,
    b"d": Key.DELETE,
    b"D": Key.DELETE,
    b"\x03": Key.INTERRUPT,
}

# Longest first so whole sequences win over their prefixes
_ORDERED = sorted(SEQUENCES, key=len, reverse=True)


class KeyDecoder:
    """Incremental bytes -> KeyCommand decoder."""

    def __init__(self):
        self._buffer = b""

    @property
    def pending(self) -> bool:
        """True while a partial escape sequence is buffered."""
        return bool(self._buffer)

    def feed(self, data: bytes) -> list[KeyCommand]:
        self._buffer += data
        commands: list[KeyCommand] = []
        while self._buffer:
            command = self._next()
            if command is None:
                break
            commands.append(command)
        return commands

    def flush(self) -> list[KeyCommand]:
        """Give up waiting and emit whatever is buffered as a literal."""
        if not self._buffer:
            return []
        data, self._buffer = self._buffer, b""
        return [KeyCommand(Key.LITERAL, data)]

    def _take(self, length: int) -> bytes:
        data, self._buffer = self._buffer[:length], self._buffer[length:]
        return data

    def _next(self) -> KeyCommand | None:
        buf = self._buffer
        for seq in _ORDERED:
            if buf.startswith(seq):
                return KeyCommand(SEQUENCES[seq], self._take(len(seq)))

        if any(seq.startswith(buf) for seq in _ORDERED):
            return None

        if buf.startswith(b"\x1b["):
            # Unknown CSI sequence (e.g. right arrow): keep it in one piece
            for i in range(2, len(buf)):
                if 0x40 <= buf[i] <= 0x7E:
                    return KeyCommand(Key.LITERAL, self._take(i + 1))
            if len(buf) < MAX_CSI_LENGTH:
                return None
            return KeyCommand(Key.LITERAL, self._take(len(buf)))

        if buf.startswith(b"\x1bO"):
            # SS3 (e.g. F1 is ESC O P): always three bytes
            return KeyCommand(Key.LITERAL, self._take(3))

        if buf.startswith(b"\x1b") and len(buf) > 1 and buf[1] != 0x1b:
            # Alt+key arrives as ESC plus the key; never decode the key alone
            return KeyCommand(Key.LITERAL, self._take(2))

        return KeyCommand(Key.LITERAL, self._take(1))


@contextlib.contextmanager
def raw_mode(fd: int | None = None) -> Iterator[int]:
    """Put the terminal on fd into raw mode for the duration of the block."""
    if fd is None:
        fd = sys.stdin.fileno()
    if not os.isatty(fd):
        raise ConfigurationError("Managing sessions needs an interactive terminal.")

    saved = termios.tcgetattr(fd)
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGHUP)}

    def _terminate(signum, frame):
        raise SystemExit(128 + signum)

    for sig in previous:
        signal.signal(sig, _terminate)
    try:
        tty.setraw(fd)
        # Raw input, but keep output processing so printed newlines still return the cursor
        attrs = termios.tcgetattr(fd)
        attrs[tty.OFLAG] |= termios.OPOST
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        yield fd
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        logger.debug("Terminal mode restored")


class KeyInputReader:
    """Reads key commands from a terminal already in raw mode.

    Usage:
        with raw_mode() as fd:
            for command in KeyInputReader(fd).commands():
                ...
    """

    def __init__(self, fd: int, escape_timeout: float = ESCAPE_TIMEOUT):
        self.fd = fd
        self.escape_timeout = escape_timeout
        self._started = False

    def commands(self) -> Iterator[KeyCommand]:
        """Lazy, endless stream of commands. Can only be consumed once.

        End of input is reported as an interrupt.
        """
        if self._started:
            raise RuntimeError("KeyInputReader.commands() can only be consumed once")
        self._started = True
        return self._read_loop()

    def _read_loop(self) -> Iterator[KeyCommand]:
        decoder = KeyDecoder()
        while True:
            data = os.read(self.fd, READ_SIZE)
            if not data:
                yield from decoder.flush()
                yield KeyCommand(Key.INTERRUPT)
                return
            yield from decoder.feed(data)

            while decoder.pending:
                ready, _, _ = select.select([self.fd], [], [], self.escape_timeout)
                if not ready:
                    yield from decoder.flush()
                    break
                more = os.read(self.fd, READ_SIZE)
                if not more:
                    yield from decoder.flush()
                    yield KeyCommand(Key.INTERRUPT)
                    return
                yield from decoder.feed(more)
