"""Tests for the chat-completion client."""

import json

import httpx
import pytest

from askcli.config import Settings
from askcli.errors import TransportError
from askcli.provider import ChatClient
from askcli.sessions import Message, Role


def completion(content="hello there", role="assistant"):
    return {
        "id": "chatcmpl-1",
        "model": "gpt-4o",
        "choices": [{"index": 0, "message": {"role": role, "content": content}, "finish_reason": "stop"}],
    }


def make_client(handler, **settings):
    settings.setdefault("api_key", "sk-test")
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return ChatClient(Settings(**settings), http_client=http)


@pytest.fixture
def history():
    return [Message.text(Role.SYSTEM, "be brief"), Message.text(Role.USER, "hi")]


class TestChatClient:

    def test_sends_full_history(self, history):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion())

        reply = make_client(handler).send(history)

        assert reply == Message.text(Role.ASSISTANT, "hello there")
        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"] == [m.to_dict() for m in history]
        assert seen["body"]["model"] == "gpt-4o"
        assert seen["body"]["max_tokens"] == 2048
        assert seen["body"]["temperature"] == 0.6

    def test_reasoning_model_omits_sampling_params(self, history):
        client = make_client(lambda r: httpx.Response(200, json=completion()), model="o1-mini")
        payload = client.build_payload(history)

        assert "max_tokens" not in payload
        assert "temperature" not in payload

    def test_error_status_keeps_raw_body(self, history):
        client = make_client(lambda r: httpx.Response(401, text='{"error": "bad key"}'))

        with pytest.raises(TransportError) as exc:
            client.send(history)
        assert exc.value.status_code == 401
        assert "bad key" in exc.value.diagnostic()

    def test_shape_mismatch_is_reported(self, history):
        client = make_client(lambda r: httpx.Response(200, json={"choices": [{"text": "legacy"}]}))

        with pytest.raises(TransportError) as exc:
            client.send(history)
        assert "legacy" in exc.value.body

    def test_non_json_response(self, history):
        client = make_client(lambda r: httpx.Response(200, text="<html>gateway</html>"))

        with pytest.raises(TransportError):
            client.send(history)

    def test_multiple_choices_rejected(self, history):
        body = completion()
        body["choices"] = body["choices"] * 2
        client = make_client(lambda r: httpx.Response(200, json=body))

        with pytest.raises(TransportError):
            client.send(history)

    def test_non_assistant_reply_rejected(self, history):
        client = make_client(lambda r: httpx.Response(200, json=completion(role="user")))

        with pytest.raises(TransportError):
            client.send(history)

    def test_network_failure(self, history):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError) as exc:
            make_client(handler).send(history)
        assert "connection refused" in str(exc.value)
