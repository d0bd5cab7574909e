from __future__ import annotations  # Text-generation gateway over OpenAI-compatible chat routes

import logging
import os
import threading
from contextlib import nullcontext
from typing import Any, ContextManager, Dict, List, Mapping, Optional, Protocol, Sequence

import httpx

from config import LlmRoute


logger = logging.getLogger(__name__)


_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> HttpResponse: ...


class TextGenerator(Protocol):  # Prompt-in / text-out provider contract
    def generate(self, prompt: str) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmTransportError(LlmGatewayError):  # Request never produced an HTTP response
    pass


class LlmStatusError(LlmGatewayError):  # Provider answered with an error status
    def __init__(self, status_code: int) -> None:
        super().__init__(f"LLM returned status {status_code}")
        self.status_code = status_code


def route_lock(route: LlmRoute) -> ContextManager[Any]:  # Serialize calls on routes marked sequential
    if not route.sequential:
        return nullcontext()
    key = route.name or f"{route.base_url}{route.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        lock = _ROUTE_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _ROUTE_LOCKS[key] = lock
    return lock


def request_body(route: LlmRoute, messages: Sequence[Mapping[str, str]], options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"model": route.model, "messages": [dict(item) for item in messages]}
    if route.temperature is not None:
        body["temperature"] = route.temperature
    if route.max_tokens is not None:
        body["max_tokens"] = route.max_tokens
    if options:
        body.update(options)
    return body


def request_headers(route: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(route.api_key_env) if route.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(route.extra_headers)
    return headers


def reply_text(data: Any) -> str:  # Pull the assistant text out of a chat-completions payload
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict) and isinstance(message.get("content"), str):
                return message["content"].strip()
        if isinstance(data.get("content"), str):
            return data["content"].strip()
    raise LlmGatewayError("LLM response missing content")


class GatewayTextGenerator:
    """``TextGenerator`` that sends each prompt as one user message to a chat route.

    Transport failures and error statuses are raised at once; a reply with no
    text is retried up to ``route.max_retries`` times before giving up.
    """

    def __init__(self, route: LlmRoute, *, client: Optional[HttpClient] = None) -> None:
        self._route = route
        self._client = client

    @property
    def route(self) -> LlmRoute:
        return self._route

    def generate(self, prompt: str) -> str:
        return self.complete([{"role": "user", "content": prompt}])

    def complete(self, messages: Sequence[Mapping[str, str]], *, options: Optional[Mapping[str, Any]] = None) -> str:
        chat = _checked_messages(messages)
        with route_lock(self._route):
            return self._complete(chat, options)

    def _complete(self, chat: List[Dict[str, str]], options: Optional[Mapping[str, Any]]) -> str:
        route = self._route
        attempts = route.max_retries + 1
        logger.info(
            "LLM request start route=%s model=%s attempts=%d preview=%s",
            route.name,
            route.model,
            attempts,
            _preview(chat),
        )
        body = request_body(route, chat, options)
        headers = request_headers(route)
        for attempt in range(1, attempts + 1):
            content = reply_text(self._send(body, headers))
            if content:
                logger.info("LLM request done route=%s attempt=%d chars=%d", route.name, attempt, len(content))
                return content
            logger.warning("LLM returned empty content route=%s attempt=%d/%d", route.name, attempt, attempts)
        raise LlmGatewayError(f"LLM returned empty content after {attempts} attempts")

    def _send(self, body: Dict[str, Any], headers: Dict[str, str]) -> Any:
        route = self._route
        url = f"{route.base_url}{route.endpoint}"
        try:
            if self._client is not None:
                return _decode(self._client.post(url, json=body, headers=headers, timeout=route.timeout_s))
            with httpx.Client(timeout=route.timeout_s) as client:
                return _decode(client.post(url, json=body, headers=headers))
        except LlmGatewayError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("LLM transport failure route=%s: %s", route.name, exc)
            raise LlmTransportError(f"LLM transport failed: {exc}") from exc


def _decode(response: HttpResponse) -> Any:
    if response.status_code >= 400:
        logger.error("LLM error status: %s", response.status_code)
        raise LlmStatusError(response.status_code)
    try:
        return response.json()
    except Exception as exc:  # noqa: BLE001
        logger.error("Invalid JSON payload from LLM: %s", exc)
        raise LlmGatewayError("LLM payload was not JSON") from exc


def _checked_messages(messages: Sequence[Mapping[str, str]]) -> List[Dict[str, str]]:
    checked: List[Dict[str, str]] = []
    for item in messages:
        role = str(item.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        checked.append({"role": role, "content": str(item.get("content", ""))})
    if not checked:
        raise ValueError("At least one chat message is required")
    return checked


def _preview(messages: Sequence[Mapping[str, str]], limit: int = 120) -> str:
    for message in messages:
        text = message.get("content", "").strip()
        if text:
            first = text.splitlines()[0]
            return first if len(first) <= limit else first[: limit - 3] + "..."
    return ""


def strip_code_fences(content: str) -> str:  # Remove a surrounding markdown fence from LLM output
    text = content.strip()
    if not text.startswith("```"):
        return text
    lines = text.splitlines()[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines).strip()
