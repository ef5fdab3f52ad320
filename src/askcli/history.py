"""Transcript viewer: dumps the conversation to a temp file and opens $EDITOR."""

import os
import shlex
import shutil
import subprocess
import tempfile

from askcli.sessions.manager import ImagePart, Message, MultiPartContent


def message_text(message: Message) -> str:
    content = message.content
    if isinstance(content, MultiPartContent):
        images = sum(1 for part in content.parts if isinstance(part, ImagePart))
        text = content.preview_text()
        return text + ("\n[image]" * images)
    return content.preview_text()


def render_transcript(messages: list[Message], width: int | None = None) -> str:
    """One banner block per message."""
    width = width or shutil.get_terminal_size().columns
    blocks = []
    for message in messages:
        blocks.append(
            f"\n\n{'▃' * width}"
            f"▍{message.role.value} ▐\n"
            f"{'▀' * width}\n"
            f"{message_text(message)}"
        )
    return "".join(blocks)


def show_transcript(messages: list[Message], editor: str = "more") -> None:
    """Open the transcript in the user's editor/pager."""
    fd, path = tempfile.mkstemp(prefix="ask_hist-", suffix=".txt")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(render_transcript(messages))
        subprocess.run([*shlex.split(editor), path], check=False)
    finally:
        os.unlink(path)
