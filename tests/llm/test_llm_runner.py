"""Tests for the local LLM runner."""

from __future__ import annotations

import json

import pytest

from codeanchor.config import LLMConfig
from codeanchor.llm.runner import LLMRunner

_ENV_KEYS = (
    "ANCHOR_LLM_MODEL",
    "OPENAI_MODEL",
    "ANCHOR_LLM_BASE_URL",
    "OPENAI_BASE_URL",
    "ANCHOR_LLM_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_llm_runner_constructs_request() -> None:
    captured = {}

    def fake_runner(request):
        captured["prompt"] = request.prompt
        captured["system"] = request.system
        captured["model"] = request.model
        captured["temperature"] = request.temperature
        captured["max_tokens"] = request.max_tokens
        captured["executable"] = request.executable
        captured["base_url"] = request.base_url
        captured["api_key"] = request.api_key
        captured["request_timeout"] = request.request_timeout
        return "response"

    runner = LLMRunner(
        model="custom-model",
        base_url=None,
        executable="ollama",
        temperature=0.15,
        max_tokens=256,
        request_timeout=42.0,
        runner=fake_runner,
    )
    result = runner.run("Describe Button", system="system message")

    assert result == "response"
    assert captured == {
        "prompt": "Describe Button",
        "system": "system message",
        "model": "custom-model",
        "temperature": 0.15,
        "max_tokens": 256,
        "executable": "ollama",
        "base_url": None,
        "api_key": None,
        "request_timeout": 42.0,
    }


def test_llm_runner_reads_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ANCHOR_LLM_MODEL", "env-model")
    monkeypatch.setenv("OPENAI_BASE_URL", "http://127.0.0.1:8080/v1/")
    monkeypatch.setenv("ANCHOR_LLM_API_KEY", "env-key")

    runner = LLMRunner()

    assert runner.model == "env-model"
    assert runner.base_url == "http://127.0.0.1:8080/v1"
    assert runner.api_key == "env-key"


def test_llm_runner_defaults_to_cli_model() -> None:
    runner = LLMRunner()

    assert runner.model == LLMRunner.DEFAULT_MODEL
    assert runner.base_url is None


def test_llm_runner_rejects_remote_endpoints() -> None:
    with pytest.raises(RuntimeError, match="not permitted"):
        LLMRunner(base_url="https://api.example.com/v1")


def test_llm_runner_http_posts_payload(monkeypatch) -> None:
    captured = {}

    class FakeResponse:
        def __init__(self, payload):
            self._payload = payload

        def read(self):
            return json.dumps(self._payload).encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    def fake_urlopen(request, timeout=None):
        captured["url"] = request.full_url
        captured["headers"] = {k.lower(): v for k, v in request.header_items()}
        captured["payload"] = json.loads(request.data.decode("utf-8"))
        captured["timeout"] = timeout
        return FakeResponse({"choices": [{"message": {"content": "  A clickable button.  "}}]})

    monkeypatch.setattr("codeanchor.llm.runner.urlopen", fake_urlopen)

    runner = LLMRunner(
        model="ai/smollm2:360M-Q4_K_M",
        base_url="http://localhost:12434/engines/v1/",
        api_key="local-key",
        temperature=0.05,
        max_tokens=128,
        request_timeout=25.0,
    )
    result = runner.run("Describe Button.", system="Write component docs.")

    assert result == "A clickable button."
    assert captured["url"] == "http://localhost:12434/engines/v1/chat/completions"
    headers = captured["headers"]
    assert headers["content-type"] == "application/json"
    assert headers["authorization"] == "Bearer local-key"
    payload = captured["payload"]
    assert payload["model"] == "ai/smollm2:360M-Q4_K_M"
    assert payload["messages"] == [
        {"role": "system", "content": "Write component docs."},
        {"role": "user", "content": "Describe Button."},
    ]
    assert payload["temperature"] == 0.05
    assert payload["max_tokens"] == 128
    assert captured["timeout"] == 25.0


def test_llm_runner_http_rejects_empty_choices(monkeypatch) -> None:
    class FakeResponse:
        def read(self):
            return b'{"choices": []}'

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

    monkeypatch.setattr("codeanchor.llm.runner.urlopen", lambda request, timeout=None: FakeResponse())

    runner = LLMRunner(base_url="http://localhost:11434/v1")

    with pytest.raises(RuntimeError, match="empty response"):
        runner.run("Describe Button.")


def test_llm_runner_from_config_prefers_config_values(monkeypatch) -> None:
    monkeypatch.setenv("ANCHOR_LLM_API_KEY", "env-key")
    config = LLMConfig(model="qwen2.5-coder", base_url="http://localhost:11434/v1", max_tokens=64)

    runner = LLMRunner.from_config(config)

    assert runner.model == "qwen2.5-coder"
    assert runner.base_url == "http://localhost:11434/v1"
    assert runner.api_key == "env-key"
    assert runner.max_tokens == 64
    assert runner.temperature == 0.2
    assert runner.request_timeout == 60.0
