"""测试模型客户端与各服务商的消息格式"""

from types import SimpleNamespace

import pytest
import requests

from phone_pilot.errors import ModelRequestError
from phone_pilot.model import MessageBuilder, ModelClient, ModelConfig, Provider, parse_reply
from phone_pilot.model.providers import (
    encode_anthropic_messages,
    encode_google_payload,
    encode_openai_messages,
    split_data_url,
)
from phone_pilot.types import Message

from .fakes import FAKE_IMAGE


def conversation():
    return [
        Message.system("You are a phone agent."),
        MessageBuilder.create_user_message(text="open settings", image_base64=FAKE_IMAGE),
        Message.assistant('do(action="Back")'),
    ]


class FakeResponse:
    def __init__(self, body, status_code=200):
        self.body = body
        self.status_code = status_code
        self.text = str(body)

    def json(self):
        return self.body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class FakeCompletions:
    def __init__(self, chunks):
        self.chunks = chunks
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return iter(self.chunks)


def chunk(content=None, reasoning=None):
    delta = SimpleNamespace(content=content, reasoning_content=reasoning)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def openai_client(provider, chunks):
    client = ModelClient(ModelConfig(provider=provider, api_key="key"))
    completions = FakeCompletions(chunks)
    client.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, completions


@pytest.mark.parametrize(
    "content, expected",
    [
        ("<think>看屏幕</think><answer>do(action=\"Back\")</answer>", ("看屏幕", 'do(action="Back")')),
        ('先返回。do(action="Back")', ("先返回。", 'do(action="Back")')),
        ('done finish(message="ok")', ("done", 'finish(message="ok")')),
        ("Tap it. Tap(element=[1, 2])", ("Tap it.", "Tap(element=[1, 2])")),
        ("no action here", ("", "no action here")),
    ],
)
def test_parse_reply(content, expected):
    assert parse_reply(content) == expected


def test_config_defaults_from_provider():
    config = ModelConfig(provider="Anthropic", api_key="")
    assert config.provider == Provider.ANTHROPIC
    assert config.base_url == "https://api.anthropic.com/v1"
    assert config.api_key == "EMPTY"
    assert ModelConfig(provider="something-else").provider == Provider.CUSTOM


def test_openai_encoding():
    encoded = encode_openai_messages(conversation())
    assert encoded[0] == {"role": "system", "content": "You are a phone agent."}
    assert encoded[1]["content"][1] == {
        "type": "image_url",
        "image_url": {"url": f"data:image/png;base64,{FAKE_IMAGE}"},
    }


def test_anthropic_encoding_lifts_system():
    system, messages = encode_anthropic_messages(conversation())
    assert system == "You are a phone agent."
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[0]["content"][1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/png", "data": FAKE_IMAGE},
    }


def test_google_encoding():
    payload = encode_google_payload(conversation())
    assert payload["systemInstruction"] == {"parts": [{"text": "You are a phone agent."}]}
    assert [c["role"] for c in payload["contents"]] == ["user", "model"]
    assert payload["contents"][0]["parts"][1] == {"inline_data": {"mime_type": "image/png", "data": FAKE_IMAGE}}


def test_split_data_url():
    assert split_data_url("data:image/jpeg;base64,abc") == ("image/jpeg", "abc")
    assert split_data_url("abc") == ("image/png", "abc")


def test_openai_streaming_request():
    client, completions = openai_client("openai", [chunk("Go back. "), chunk('do(action="Back")')])

    response = client.request(conversation())

    assert response.thinking == "Go back."
    assert response.action == 'do(action="Back")'
    assert response.time_to_first_token is not None
    assert completions.kwargs["stream"] is True
    assert completions.kwargs["frequency_penalty"] == 0.2
    assert completions.kwargs["model"] == "gpt-4o"


def test_glm_enables_thinking_channel():
    client, completions = openai_client(
        "glm", [chunk(reasoning="需要返回"), chunk('do(action="Back")')]
    )

    response = client.request(conversation())

    assert response.thinking == "需要返回", "推理通道内容优先作为思考过程"
    assert completions.kwargs["extra_body"] == {"thinking": {"type": "enabled"}}
    assert "frequency_penalty" not in completions.kwargs


def test_empty_reply_is_an_error():
    client, _ = openai_client("openai", [chunk(""), chunk(None)])
    with pytest.raises(ModelRequestError):
        client.request(conversation())


def test_anthropic_request():
    body = {
        "content": [
            {"type": "thinking", "thinking": "屏幕是设置页"},
            {"type": "text", "text": 'finish(message="ok")'},
        ]
    }
    session = FakeSession(FakeResponse(body))
    client = ModelClient(ModelConfig(provider="anthropic", api_key="secret"), session=session)

    response = client.request(conversation())

    assert response.thinking == "屏幕是设置页"
    assert response.action == 'finish(message="ok")'
    call = session.calls[0]
    assert call["url"] == "https://api.anthropic.com/v1/messages"
    assert call["headers"]["x-api-key"] == "secret"
    assert call["headers"]["anthropic-version"] == "2023-06-01"
    assert call["json"]["system"] == "You are a phone agent."
    assert client.client is None


def test_google_request():
    body = {"candidates": [{"content": {"parts": [{"text": 'do(action="Home")'}]}}]}
    session = FakeSession(FakeResponse(body))
    client = ModelClient(ModelConfig(provider="google", api_key="g", model_name="gemini-x"), session=session)

    response = client.request(conversation())

    assert response.action == 'do(action="Home")'
    call = session.calls[0]
    assert call["url"].endswith("/models/gemini-x:generateContent")
    assert call["headers"]["x-goog-api-key"] == "g"
    assert call["json"]["generationConfig"]["maxOutputTokens"] == 3000


def test_http_error_status():
    session = FakeSession(FakeResponse({"error": "overloaded"}, status_code=529))
    client = ModelClient(ModelConfig(provider="anthropic", api_key="k"), session=session)
    with pytest.raises(ModelRequestError, match="529"):
        client.request(conversation())


def test_transport_error():
    session = FakeSession(error=requests.ConnectionError("refused"))
    client = ModelClient(ModelConfig(provider="google", api_key="k"), session=session)
    with pytest.raises(ModelRequestError, match="refused"):
        client.request(conversation())


def test_malformed_reply():
    session = FakeSession(FakeResponse({"candidates": []}))
    client = ModelClient(ModelConfig(provider="google", api_key="k"), session=session)
    with pytest.raises(ModelRequestError):
        client.request(conversation())


def test_screen_info():
    assert MessageBuilder.build_screen_info("设置", battery=80) == '{"current_app": "设置", "battery": 80}'
