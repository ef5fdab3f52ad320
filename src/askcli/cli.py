"""CLI interface for askcli.

Each shell gets its own running conversation. Settings come from
~/.askcli/config.yaml (or environment variables) so you don't need flags
for every run.

Quick start:
    ask "how do I undo a git rebase"       # Ask in this shell's conversation
    cat error.log | ask "what broke?"      # Piped input is appended
    ask -i "what is in this screenshot?"   # Attach clipboard image
    ask                                    # Read the conversation in $EDITOR
    ask -l                                 # Print the last message
    ask -o                                 # Switch between / delete sessions
    ask -c                                 # Start over
"""

import logging
import sys

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from askcli.clipboard import image_part, select_clipboard
from askcli.config import get_settings
from askcli.errors import AskError, ConfigurationError, TransportError
from askcli.history import message_text, show_transcript
from askcli.picker import KeyInputReader, PickerOutcome, PickerState, SessionPicker, raw_mode
from askcli.provider import ChatClient
from askcli.sessions import (
    ActiveConversation,
    Message,
    MultiPartContent,
    Role,
    SessionContext,
    SessionStore,
    TextContent,
    TextPart,
    clear_active,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="ask",
    help="Terminal LLM caller with one running conversation per shell",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

EXIT_INTERRUPTED = 130


def _setup_logging(verbose: bool) -> None:
    handler = RichHandler(console=err_console, show_time=False, show_path=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def _read_piped_input() -> str:
    """Whatever was piped into stdin, or an empty string on a terminal."""
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.read()


def _check_modes(prompt: str, image: bool, manage: bool, clear: bool, last: bool) -> None:
    modes = [name for name, on in (("--manage", manage), ("--clear", clear), ("--last", last)) if on]
    if len(modes) > 1:
        raise typer.BadParameter(f"{' and '.join(modes)} cannot be combined")
    if modes and (prompt or image):
        raise typer.BadParameter(f"{modes[0]} does not take a prompt")


@app.command(context_settings={"help_option_names": ["-h", "--help"]})
def main(
    prompt: list[str] = typer.Argument(None, help="Prompt text"),
    image: bool = typer.Option(
        False, "--image", "-i", help="Push image from clipboard into the prompt"),
    manage: bool = typer.Option(
        False, "--manage", "-o", help="Manage ongoing conversations"),
    clear: bool = typer.Option(
        False, "--clear", "-c", help="Clear current conversation"),
    last: bool = typer.Option(
        False, "--last", "-l", help="Get last message"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    """Ask the model something, keeping this shell's conversation going.

    With no prompt the conversation so far is opened in $EDITOR.
    """
    _setup_logging(verbose)
    text = " ".join(prompt or [])
    _check_modes(text, image, manage, clear, last)

    try:
        settings = get_settings()
        context = SessionContext.current(settings.session_dir, settings.session_prefix)
        store = SessionStore(context)

        if manage:
            _manage(store, settings.preview_width)
        elif clear:
            if not clear_active(store, context):
                raise AskError(f"Could not clear {context.active_id}; see the warning above")
            console.print("[dim]Conversation cleared.[/dim]")
        elif last:
            conversation = ActiveConversation.load_or_create(
                store, context, settings.model, settings.preamble, settings.preamble_role)
            console.print(message_text(conversation.last_message()), markup=False, highlight=False)
        else:
            _ask(store, context, settings, text, image)
    except (AskError, OSError) as e:
        err_console.print(Text(f"Error: {e}", style="red"))
        logger.debug("Fatal error", exc_info=True)
        raise typer.Exit(1)
    except KeyboardInterrupt:
        raise typer.Exit(EXIT_INTERRUPTED)


def _manage(store: SessionStore, preview_width: int) -> None:
    """Interactive session picker (`ask -o`)."""
    picker = SessionPicker(store, console=console, preview_width=preview_width)
    if picker.state is PickerState.EMPTY:
        picker.run([])
        return

    with raw_mode() as fd:
        outcome = picker.run(KeyInputReader(fd).commands())

    if outcome is PickerOutcome.PROMOTED:
        console.print(f"[dim]Switched to {picker.promoted}[/dim]")


def _ask(store, context, settings, text: str, image: bool) -> None:
    piped = _read_piped_input()
    if piped:
        text = f"{text}\n{piped}" if text else piped

    conversation = ActiveConversation.load_or_create(
        store, context, settings.model, settings.preamble, settings.preamble_role)

    if not text and not image:
        show_transcript(conversation.messages, settings.editor)
        return

    if not settings.api_key:
        raise ConfigurationError(
            "Missing API key! Set ASKCLI_API_KEY or add api_key to ~/.askcli/config.yaml")

    content = TextContent(text)
    if image:
        clipboard = select_clipboard(settings.clipboard)
        content = MultiPartContent((
            TextPart(text),
            image_part(clipboard.capture(), settings.vision_detail),
        ))
    user_message = Message(role=Role.USER, content=content)

    client = ChatClient(settings)
    try:
        reply = client.send(conversation.messages + [user_message])
    except TransportError as e:
        err_console.print(Text(e.diagnostic(), style="red"))
        err_console.print(Text("Your message was not sent:", style="dim"))
        err_console.print(Text(text))
        raise typer.Exit(1)
    finally:
        client.close()

    conversation.append_turn(user_message, reply)
    console.print(message_text(reply), markup=False, highlight=False)
