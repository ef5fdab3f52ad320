"""The conversation bound to the running process."""

import logging

from askcli.errors import EmptyConversationError
from askcli.sessions.manager import (
    Message,
    Role,
    SessionContext,
    SessionRecord,
    SessionStore,
)

logger = logging.getLogger(__name__)


class ActiveConversation:
    """The current session, used for normal ask/answer turns.

    Every append is written to disk before the next turn can begin.
    """

    def __init__(self, store: SessionStore, context: SessionContext, record: SessionRecord):
        self.store = store
        self.context = context
        self.record = record

    @classmethod
    def load_or_create(
        cls,
        store: SessionStore,
        context: SessionContext,
        model: str,
        preamble: str,
        preamble_role: Role | str = Role.SYSTEM,
    ) -> "ActiveConversation":
        """Load the process's active session, or start a new one.

        A corrupt active file raises CorruptSessionError; it is never
        replaced silently. A new session is not written until its first turn.
        """
        if store.exists(context.active_id):
            record = store.load(context.active_id)
            logger.debug(f"Loaded {context.active_id} with {record.message_count} messages")
        else:
            record = SessionRecord(
                path=context.active_path,
                model=model,
                messages=[Message.text(preamble_role, preamble)],
            )
        return cls(store, context, record)

    @property
    def messages(self) -> list[Message]:
        return self.record.messages

    def append_turn(self, *messages: Message) -> None:
        """Append messages in order and persist the whole record.

        If persisting fails the messages are dropped again and the error
        propagates.
        """
        before = len(self.record.messages)
        self.record.messages.extend(messages)
        try:
            self.store.save(self.record)
        except BaseException:
            del self.record.messages[before:]
            raise

    def last_message(self) -> Message:
        if not self.record.messages:
            raise EmptyConversationError(f"Session {self.record.session_id} has no messages")
        return self.record.messages[-1]

    def clear(self) -> bool:
        """Delete the active session file. Missing files are fine."""
        return clear_active(self.store, self.context)


def clear_active(store: SessionStore, context: SessionContext) -> bool:
    """Delete the context's active session file without loading it.

    Returns:
        True once no active file is left, False if removal was denied.
    """
    if store.delete(context.active_id):
        logger.info(f"Cleared {context.active_id}")
        return True
    return not store.exists(context.active_id)
