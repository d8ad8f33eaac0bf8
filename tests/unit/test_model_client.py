import pytest
import requests

from marketing_compliance.services import models
from marketing_compliance.services.models import LLMClient, ensure_ollama_endpoint


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


@pytest.fixture
def captured(monkeypatch):
    calls = []

    def install(response):
        def fake_post(url, json=None, headers=None, params=None, timeout=None):
            calls.append({"url": url, "json": json, "headers": headers, "params": params, "timeout": timeout})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(models.requests, "post", fake_post)
        return calls

    return install


@pytest.mark.parametrize(
    "endpoint, suffix, expected",
    [
        ("http://localhost:11434", "api/generate", "http://localhost:11434/api/generate"),
        ("http://localhost:11434/api", "api/chat", "http://localhost:11434/api/chat"),
        ("http://localhost:11434/api/chat/", "api/chat", "http://localhost:11434/api/chat"),
        ("https://proxy.local/custom/path", "api/generate", "https://proxy.local/custom/path"),
    ],
)
def test_ensure_ollama_endpoint(endpoint, suffix, expected):
    assert ensure_ollama_endpoint(endpoint, suffix) == expected


def test_unsupported_mode_rejected():
    with pytest.raises(ValueError, match="Unsupported model API mode"):
        LLMClient(api_mode="carrier-pigeon")


def test_is_configured_requires_key_for_hosted_modes(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    assert not LLMClient(api_mode="gemini").is_configured()
    assert LLMClient(api_mode="gemini", auth_token="k").is_configured()
    assert LLMClient(endpoint="http://localhost:11434", api_mode="ollama").is_configured()


def test_ollama_generate_request(captured):
    calls = captured(FakeResponse({"response": '{"ok": true}'}))
    client = LLMClient(endpoint="http://localhost:11434", api_mode="ollama")

    reply = client.call("gemma", "prompt text", temperature=0.1, num_ctx=4096, num_predict=256, timeout=12)

    assert reply.text == '{"ok": true}'
    request = calls[0]
    assert request["url"] == "http://localhost:11434/api/generate"
    assert request["timeout"] == 12
    assert request["json"]["prompt"] == "prompt text"
    assert request["json"]["format"] == "json"
    assert request["json"]["options"] == {"temperature": 0.1, "num_ctx": 4096, "num_predict": 256}


def test_ollama_chat_reads_message_content(captured):
    captured(FakeResponse({"message": {"content": "hello"}}))
    client = LLMClient(endpoint="http://localhost:11434/api", api_mode="ollama_chat")
    assert client.call("gemma", "hi").text == "hello"


def test_openai_request_uses_bearer_and_max_tokens(captured):
    calls = captured(FakeResponse({"choices": [{"message": {"content": "answer"}}]}))
    client = LLMClient(endpoint="http://llm.local/v1/chat/completions", auth_token="secret", api_mode="openai")

    assert client.call("gpt", "q", num_predict=64).text == "answer"
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"
    assert calls[0]["json"]["max_tokens"] == 64


def test_gemini_request_builds_model_url(captured):
    calls = captured(
        FakeResponse({"candidates": [{"content": {"parts": [{"text": "part one"}, {"text": "part two"}]}}]})
    )
    client = LLMClient(auth_token="key-123", api_mode="gemini")

    assert client.call("gemini-2.0-flash", "q").text == "part one\npart two"
    assert calls[0]["url"] == (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
    )
    assert calls[0]["params"] == {"key": "key-123"}


def test_http_error_wrapped(captured):
    captured(FakeResponse(status_code=503, text="overloaded"))
    client = LLMClient(endpoint="http://localhost:11434", api_mode="ollama")
    with pytest.raises(RuntimeError, match="HTTP 503"):
        client.call("gemma", "q")


def test_transport_error_wrapped(captured):
    captured(requests.ConnectionError("refused"))
    client = LLMClient(endpoint="http://localhost:11434", api_mode="ollama")
    with pytest.raises(RuntimeError, match="Model request failed"):
        client.call("gemma", "q")


def test_non_json_body_wrapped(captured):
    captured(FakeResponse(payload=None, text="<html>"))
    client = LLMClient(endpoint="http://localhost:11434", api_mode="ollama")
    with pytest.raises(RuntimeError, match="non-JSON"):
        client.call("gemma", "q")
