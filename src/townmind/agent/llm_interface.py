"""
Model client interface for townmind.

This module is the only place that *directly* calls an LLM.  Everything else (ReAct loop, tools,
planner) stays model-agnostic and only sees :class:`~townmind.core.schema.ChatTurn` objects.

We support two back-ends out of the box:

1. **OpenAI-compatible** ``/chat/completions`` endpoints (OpenAI, DeepSeek, vLLM, ...).
2. **Ollama** ``/api/chat`` for self-hosted models.

Additional providers can be added by subclassing :class:`ChatModelClient` and registering via
:func:`register_client`.
"""

import json
import logging
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Sequence,
    Type,
)

import httpx
from pydantic import ValidationError

from townmind.common import truncate
from townmind.config import settings
from townmind.core.schema import (
    ChatTurn,
    ToolCallFunction,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)


class ModelCallError(RuntimeError):
    """Raised when the model cannot be reached or answers with something unusable."""


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_CLIENT_REGISTRY: dict[str, Type["ChatModelClient"]] = {}


def register_client(name: str) -> Callable:
    """Decorator to register a model client class under *name*."""

    def wrapper(cls: Type["ChatModelClient"]) -> Type["ChatModelClient"]:
        _CLIENT_REGISTRY[name] = cls
        return cls

    return wrapper


def load_client(name: str | None = None, **kwargs: Any) -> "ChatModelClient":
    """
    Factory that returns an instantiated model client.

    Fallback order:
    1. *name* arg
    2. ``settings.LLM_BACKEND`` env option
    3. default: ``"openai"``

    Extra keyword arguments are forwarded to the client constructor.
    """

    target = name or getattr(settings, "LLM_BACKEND", "openai")
    cls = _CLIENT_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Model client '{target}' is not registered.")
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class ChatModelClient(ABC):
    """Abstract chat model that turns a conversation into the next assistant turn."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT
        self._http = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def aclose(self) -> None:
        """Release the underlying HTTP connection pool."""
        await self._http.aclose()

    async def _post(self, url: str, payload: Dict[str, Any], timeout: float | None) -> Dict[str, Any]:
        """POST *payload* and return the decoded JSON body, mapping every failure to ModelCallError."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            resp = await self._http.post(
                url,
                json=payload,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("HTTP error calling %s: %s", url, exc)
            raise ModelCallError(f"HTTP error: {exc}") from exc

        if resp.is_error:
            logger.error("LLM API error %d: %s", resp.status_code, truncate(resp.text, 200))
            raise ModelCallError(f"LLM API returned status {resp.status_code}")

        try:
            body = resp.json()
        except json.JSONDecodeError as exc:
            raise ModelCallError("LLM API returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise ModelCallError("LLM API returned an unexpected body")
        return body

    @abstractmethod
    async def complete(
        self,
        messages: Sequence[ChatTurn],
        tools: List[Dict[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> ChatTurn:
        """Return the model's next assistant turn.

        Raises
        ------
        ModelCallError
            On transport errors, non-2xx responses, or malformed bodies.
        """


# ---------------------------------------------------------------------------
# Concrete clients
# ---------------------------------------------------------------------------
@register_client("openai")
class OpenAICompatibleClient(ChatModelClient):
    """Client for any endpoint speaking the OpenAI chat-completions protocol."""

    async def complete(
        self,
        messages: Sequence[ChatTurn],
        tools: List[Dict[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> ChatTurn:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_wire() for m in messages],
        }
        if tools:
            payload["tools"] = tools

        body = await self._post(f"{self.base_url}/chat/completions", payload, timeout)

        try:
            message = body["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            logger.error("Malformed completion body: %s", truncate(json.dumps(body), 200))
            raise ModelCallError("LLM response has no choices[0].message") from exc

        try:
            return ChatTurn.assistant(
                message.get("content"),
                [ToolCallRequest.model_validate(tc) for tc in message.get("tool_calls") or []],
            )
        except (ValidationError, AttributeError) as exc:
            raise ModelCallError(f"Malformed assistant message: {exc}") from exc


@register_client("ollama")
class OllamaClient(ChatModelClient):
    """Client for a local Ollama server."""

    async def complete(
        self,
        messages: Sequence[ChatTurn],
        tools: List[Dict[str, Any]] | None = None,
        timeout: float | None = None,
    ) -> ChatTurn:
        wire_messages = []
        for m in messages:
            wire = m.to_wire()
            # Ollama expects argument objects, not JSON strings
            for tc in wire.get("tool_calls", []):
                tc["function"]["arguments"] = _arguments_object(tc["function"]["arguments"])
            wire_messages.append(wire)

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": wire_messages,
            "stream": False,
        }
        if tools:
            payload["tools"] = tools

        body = await self._post(f"{self.base_url}/api/chat", payload, timeout)

        message = body.get("message")
        if not isinstance(message, dict):
            raise ModelCallError("ollama_unexpected_response")

        try:
            calls: List[ToolCallRequest] = []
            for raw in message.get("tool_calls") or []:
                fn = raw.get("function") or {}
                args = fn.get("arguments", {})
                calls.append(
                    ToolCallRequest(
                        id=raw.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                        function=ToolCallFunction(
                            name=fn.get("name", ""),
                            arguments=args if isinstance(args, str) else json.dumps(args),
                        ),
                    )
                )
            return ChatTurn.assistant(message.get("content"), calls)
        except (ValidationError, AttributeError, TypeError) as exc:
            raise ModelCallError(f"Malformed assistant message: {exc}") from exc


def _arguments_object(raw: str) -> Dict[str, Any]:
    """Decode a stored argument string for the wire; unparseable history degrades to ``{}``."""
    try:
        parsed = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.debug("Sending undecodable tool arguments as {}: %s", truncate(raw, 80))
        return {}
    return parsed if isinstance(parsed, dict) else {}
