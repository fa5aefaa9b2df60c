"""Local model runtimes used to enrich component documentation."""

from __future__ import annotations

import ipaddress
import json
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from ..config import LLMConfig

_UNSET = object()
_LOCAL_HOSTNAMES = frozenset({"localhost", "host.docker.internal"})
_LOCAL_SUFFIXES = (".local", ".localdomain", ".internal")


@dataclass
class LLMRequest:
    """A single prompt together with the runtime settings it is sent with."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    executable: Optional[str]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]


Transport = Callable[[LLMRequest], str]


class LLMRunner:
    """Sends enrichment prompts to a local model.

    With a ``base_url`` the runner talks to an OpenAI-compatible
    ``/chat/completions`` endpoint; otherwise it shells out to ``ollama run``.
    Only loopback and local-network hosts are accepted so component sources
    never leave the machine.
    """

    DEFAULT_MODEL = "llama3.2:3b"
    ENV_MODEL_KEYS = ("ANCHOR_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("ANCHOR_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("ANCHOR_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None | object = _UNSET,
        executable: str | None = None,
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = None,
        api_key: str | None | object = _UNSET,
        request_timeout: Optional[float] = 60.0,
        runner: Transport | None = None,
    ) -> None:
        self.model = model or _env(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        if base_url is _UNSET:
            base_url = _env(self.ENV_BASE_URL_KEYS)
        self.base_url = _require_local(str(base_url)) if base_url else None
        self.api_key = _env(self.ENV_API_KEY_KEYS) if api_key is _UNSET else api_key
        self.executable = executable or "ollama"
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.request_timeout = request_timeout
        if runner is None:
            runner = post_chat_completion if self.base_url else run_ollama
        self._transport = runner

    @classmethod
    def from_config(cls, config: LLMConfig) -> "LLMRunner":
        """Build a runner from the ``llm`` section of ``.anchor.yml``.

        Unset keys fall back to the environment, then to the built-in defaults.
        """
        kwargs: dict[str, Any] = {"executable": config.executable}
        if config.base_url is not None:
            kwargs["base_url"] = config.base_url
        if config.api_key is not None:
            kwargs["api_key"] = config.api_key
        if config.temperature is not None:
            kwargs["temperature"] = config.temperature
        if config.max_tokens is not None:
            kwargs["max_tokens"] = config.max_tokens
        if config.request_timeout is not None:
            kwargs["request_timeout"] = config.request_timeout
        return cls(config.model, **kwargs)

    def run(self, prompt: str, *, system: str | None = None) -> str:
        """Return the model's reply to ``prompt``. Raises ``RuntimeError`` on failure."""
        return self._transport(
            LLMRequest(
                prompt=prompt,
                system=system,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                executable=self.executable,
                base_url=self.base_url,
                api_key=self.api_key,  # type: ignore[arg-type]
                request_timeout=self.request_timeout,
            )
        )


def run_ollama(request: LLMRequest) -> str:
    """Run one prompt through the ollama CLI."""
    executable = request.executable or "ollama"
    # ollama run has no system flag; prepend it to the prompt instead
    prompt = f"{request.system.strip()}\n\n{request.prompt}" if request.system else request.prompt
    try:
        completed = subprocess.run(
            [executable, "run", request.model, prompt],
            check=True,
            capture_output=True,
            text=True,
            timeout=request.request_timeout,
        )
    except FileNotFoundError as exc:  # pragma: no cover - depends on environment
        raise RuntimeError(
            f"'{executable}' was not found. Install Ollama or set llm.base_url in .anchor.yml."
        ) from exc
    except subprocess.CalledProcessError as exc:  # pragma: no cover - depends on environment
        raise RuntimeError(f"{executable} exited with {exc.returncode}: {exc.stderr.strip()}") from exc
    except subprocess.TimeoutExpired as exc:  # pragma: no cover - depends on environment
        raise RuntimeError(f"{executable} did not answer within {exc.timeout}s") from exc
    return completed.stdout.strip()


def post_chat_completion(request: LLMRequest) -> str:
    """POST one prompt to ``{base_url}/chat/completions`` and return the reply text."""
    if not request.base_url:
        raise RuntimeError("llm.base_url is required for HTTP enrichment")

    messages = [{"role": "user", "content": request.prompt}]
    if request.system:
        messages.insert(0, {"role": "system", "content": request.system})
    body: dict[str, Any] = {"model": request.model, "messages": messages}
    if request.temperature is not None:
        body["temperature"] = request.temperature
    if request.max_tokens is not None:
        body["max_tokens"] = request.max_tokens

    headers = {"Content-Type": "application/json"}
    if request.api_key:
        headers["Authorization"] = f"Bearer {request.api_key}"
    http_request = Request(
        f"{request.base_url}/chat/completions",
        data=json.dumps(body).encode("utf-8"),
        headers=headers,
        method="POST",
    )

    try:
        with urlopen(http_request, timeout=request.request_timeout or 60.0) as response:
            raw = response.read()
    except HTTPError as exc:  # pragma: no cover - depends on runtime
        detail = exc.read().decode("utf-8", errors="ignore").strip()
        raise RuntimeError(f"Enrichment request failed with HTTP {exc.code}: {detail or exc.reason}") from exc
    except URLError as exc:  # pragma: no cover - depends on runtime
        raise RuntimeError(f"Enrichment endpoint unreachable: {exc.reason}") from exc

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RuntimeError("Enrichment endpoint returned invalid JSON") from exc

    content = _first_choice_text(payload)
    if not content:
        raise RuntimeError("Enrichment endpoint returned an empty response")
    return content.strip()


def _first_choice_text(payload: Any) -> str:
    try:
        choice = payload["choices"][0]
    except (KeyError, IndexError, TypeError):
        return ""
    if not isinstance(choice, dict):
        return ""
    message = choice.get("message")
    content = message.get("content") if isinstance(message, dict) else choice.get("text")
    return content if isinstance(content, str) else ""


def _env(keys: Sequence[str]) -> str | None:
    return next((os.environ[key] for key in keys if os.environ.get(key)), None)


def _require_local(url: str) -> str:
    url = url.rstrip("/")
    host = urlparse(url).hostname
    if host is None or _is_local_host(host):
        return url
    raise RuntimeError(f"Remote base_url '{url}' is not permitted; point llm.base_url at a local runtime.")


def _is_local_host(host: str) -> bool:
    host = host.lower()
    if host in _LOCAL_HOSTNAMES or host.endswith(_LOCAL_SUFFIXES):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return address.is_loopback or address.is_unspecified


__all__ = ["LLMRequest", "LLMRunner", "post_chat_completion", "run_ollama"]
