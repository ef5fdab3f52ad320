"""Shared pytest fixtures."""

import json

import pytest

from askcli.sessions import Message, Role, SessionContext, SessionRecord, SessionStore


@pytest.fixture
def context(tmp_path):
    """Session context in a temp directory (avoids touching the real /tmp)."""
    d = tmp_path / "sessions"
    d.mkdir()
    return SessionContext(directory=d, owner_id="4242")


@pytest.fixture
def store(context):
    return SessionStore(context)


@pytest.fixture
def write_session(context):
    """Write a session file with a preamble and an optional first prompt."""

    def _write(session_id: str, first_prompt: str | None = None, model: str = "gpt-4o"):
        messages = [{"role": "system", "content": "be brief"}]
        if first_prompt is not None:
            messages.append({"role": "user", "content": first_prompt})
            messages.append({"role": "assistant", "content": f"answer to {first_prompt}"})
        path = context.directory / session_id
        path.write_text(json.dumps({"model": model, "messages": messages}))
        return path

    return _write


@pytest.fixture
def record(context):
    return SessionRecord(
        path=context.active_path,
        model="gpt-4o",
        messages=[Message.text(Role.SYSTEM, "be brief")],
    )
