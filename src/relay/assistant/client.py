"""HTTP client for the local assistant server (``opencode serve`` API)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from relay.assistant.errors import (
    AssistantClientError,
    AssistantHTTPError,
    AssistantNotFoundError,
    AssistantTimeoutError,
    AssistantUnavailableError,
)
from relay.assistant.types import Conversation, decode_reply, render_reply

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:4096"
DEFAULT_TIMEOUT = 600.0  # Long agent turns are normal
DEFAULT_HEALTH_TIMEOUT = 5.0


class AssistantClient:
    """Async client for assistant conversations.

    One ``httpx.AsyncClient`` is created lazily and reused for all requests.
    Failures are classified into :mod:`relay.assistant.errors` so callers can
    tell a missing conversation from a timeout or an unreachable server.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        agent: str | None = None,
        system_prompt: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.agent = agent
        self.system_prompt = system_prompt
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> AssistantClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        """Check whether the assistant server answers."""
        try:
            response = await self._get_client().get(
                "/session", timeout=self.health_timeout
            )
        except httpx.HTTPError as e:
            logger.debug("health_check_failed", extra={"error.message": str(e)})
            return False
        return response.is_success

    async def wait_for_server(
        self, max_attempts: int = 10, interval: float = 2.0
    ) -> bool:
        """Poll the health check until the server answers or attempts run out."""
        for attempt in range(max_attempts):
            if await self.health_check():
                return True
            logger.info(
                "waiting_for_assistant",
                extra={
                    "attempt": attempt + 1,
                    "max_attempts": max_attempts,
                    "assistant.base_url": self.base_url,
                },
            )
            await asyncio.sleep(interval)
        return False

    async def create_conversation(self, title: str) -> Conversation:
        """Create a new conversation."""
        data = await self._request("POST", "/session", json={"title": title})
        if not isinstance(data, dict) or not data.get("id"):
            raise AssistantClientError(
                "Assistant returned a conversation without an id",
                response=str(data),
            )
        conversation = Conversation.from_dict(data)
        logger.info(
            "conversation_created",
            extra={"conversation.id": conversation.id, "conversation.title": title},
        )
        return conversation

    async def send_to_conversation(self, conversation_id: str, text: str) -> str:
        """Send a user message and return the rendered reply text."""
        body: dict[str, Any] = {"parts": [{"type": "text", "text": text}]}
        if self.agent:
            body["agent"] = self.agent
        if self.system_prompt:
            body["system"] = self.system_prompt

        data = await self._request(
            "POST", f"/session/{conversation_id}/message", json=body
        )
        return render_reply(decode_reply(data))

    async def get_conversation(self, conversation_id: str) -> Conversation:
        data = await self._request("GET", f"/session/{conversation_id}")
        return Conversation.from_dict(data)

    async def list_conversations(self) -> list[Conversation]:
        """List conversations; accepts a bare array or a ``sessions`` wrapper."""
        data = await self._request("GET", "/session")
        if isinstance(data, dict):
            data = data.get("sessions") or []
        return [Conversation.from_dict(item) for item in data if isinstance(item, dict)]

    async def delete_conversation(self, conversation_id: str) -> None:
        await self._request("DELETE", f"/session/{conversation_id}")
        logger.info("conversation_deleted", extra={"conversation.id": conversation_id})

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Issue a request and classify failures.

        Returns:
            Decoded JSON body, or an empty dict for non-JSON responses.
        """
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise AssistantTimeoutError(
                "Request timed out - the assistant may still be processing a long task"
            ) from e
        except httpx.TransportError as e:
            raise AssistantUnavailableError(f"Network error: {e}") from e

        if not response.is_success:
            error_cls = (
                AssistantNotFoundError
                if response.status_code == 404
                else AssistantHTTPError
            )
            raise error_cls(
                f"Assistant API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                response=response.text,
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return {}

        try:
            return response.json()
        except ValueError as e:
            raise AssistantClientError(
                "Assistant returned invalid JSON",
                status_code=response.status_code,
                response=response.text,
            ) from e
