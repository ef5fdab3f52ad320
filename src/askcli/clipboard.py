"""Clipboard image capture for vision models.

The clipboard backend is picked once at startup and passed to whoever needs
it:

    clipboard = select_clipboard(settings.clipboard)
    part = image_part(clipboard.capture(), detail="high")
"""

import base64
import logging
import os
import subprocess
from abc import ABC, abstractmethod
from typing import Mapping

from askcli.errors import ConfigurationError
from askcli.sessions.manager import ImagePart

logger = logging.getLogger(__name__)


class ClipboardProvider(ABC):
    """Returns the clipboard contents as PNG bytes."""

    name: str

    @abstractmethod
    def capture(self) -> bytes:
        ...


class UnsupportedClipboard(ClipboardProvider):
    name = "unsupported"

    def capture(self) -> bytes:
        raise ConfigurationError("Unsupported OS/DE combination. Only Xorg and Wayland are supported.")


class CommandClipboard(ClipboardProvider):
    """Clipboard read through an external command."""

    command: list[str]

    def capture(self) -> bytes:
        logger.debug(f"Reading clipboard with: {' '.join(self.command)}")
        try:
            result = subprocess.run(self.command, capture_output=True, check=False)
        except FileNotFoundError as e:
            raise ConfigurationError(f"{self.command[0]} is not installed") from e
        if result.returncode != 0:
            stderr = result.stderr.decode(errors="replace").strip()
            raise ConfigurationError(f"Could not read clipboard image: {stderr or 'no image in clipboard'}")
        return result.stdout


class XorgClipboard(CommandClipboard):
    name = "xorg"
    command = ["xclip", "-selection", "clipboard", "-t", "image/png", "-o"]


class WaylandClipboard(CommandClipboard):
    name = "wayland"
    command = ["wl-paste", "--type", "image/png"]


PROVIDERS: dict[str, type[ClipboardProvider]] = {
    "xorg": XorgClipboard,
    "wayland": WaylandClipboard,
    "none": UnsupportedClipboard,
}


def select_clipboard(setting: str = "auto", environ: Mapping[str, str] | None = None) -> ClipboardProvider:
    """Pick the clipboard backend for this display server."""
    if setting != "auto":
        try:
            return PROVIDERS[setting]()
        except KeyError:
            raise ConfigurationError(
                f"Unknown clipboard setting {setting!r}; use auto, xorg, wayland or none"
            ) from None

    env = os.environ if environ is None else environ
    if env.get("WAYLAND_DISPLAY"):
        return WaylandClipboard()
    if env.get("DISPLAY"):
        return XorgClipboard()
    return UnsupportedClipboard()


def image_part(png: bytes, detail: str = "high") -> ImagePart:
    """Wrap PNG bytes as an inline data-URL image part."""
    encoded = base64.b64encode(png).decode("ascii")
    return ImagePart(url=f"data:image/png;base64,{encoded}", detail=detail)
