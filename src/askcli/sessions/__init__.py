"""Session persistence for the `ask` command.

- One JSON file per shell, named after the parent process id
- Atomic full-file rewrites after every turn
- Sessions can be listed, previewed, promoted and deleted
"""

from askcli.sessions.active import ActiveConversation, clear_active
from askcli.sessions.manager import (
    ImagePart,
    Message,
    MultiPartContent,
    Role,
    SessionContext,
    SessionRecord,
    SessionStore,
    TextContent,
    TextPart,
)

__all__ = [
    "ActiveConversation",
    "ImagePart",
    "Message",
    "MultiPartContent",
    "Role",
    "SessionContext",
    "SessionRecord",
    "SessionStore",
    "TextContent",
    "TextPart",
    "clear_active",
]
