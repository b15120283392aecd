"""
AI Integration Module

Talks to an OpenCode server: opens a session, sends a prompt to one of its
agents and extracts the text (and optionally the reasoning) of the reply.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ..models import AIConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)

PLAN_AGENT = "plan"
BUILD_AGENT = "build"

_JSON_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


@dataclass
class AIMessage:
    """Reply from the AI agent."""

    text: str
    session_id: str


class AIIntegrationError(Exception):
    """Exception raised for AI integration errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OpenCodeIntegration:
    """
    OpenCode server integration used by the AI use cases and the ``do`` command.

    Each message opens a fresh session so runs never share conversation state.
    """

    def __init__(self, config: AIConfig, transport: httpx.AsyncBaseTransport | None = None):
        """Initialize OpenCode integration with configuration."""
        self.config = config
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.server_url,
            timeout=self.config.timeout,
            transport=self._transport,
        )

    async def _post(self, client: httpx.AsyncClient, path: str, payload: dict[str, Any]) -> Any:
        try:
            response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise AIIntegrationError(
                f"OpenCode request to {self.config.server_url}{path} failed: {e}"
            ) from e
        if response.status_code >= 400:
            raise AIIntegrationError(
                f"OpenCode {path} returned {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise AIIntegrationError(f"OpenCode {path} returned invalid JSON") from e

    def _extract_text(self, payload: Any) -> str:
        """Join the text parts of a message reply, adding reasoning when enabled."""
        parts = payload.get("parts", []) if isinstance(payload, dict) else []
        texts = []
        reasoning = []
        for part in parts:
            if not isinstance(part, dict):
                continue
            if part.get("type") == "text" and part.get("text"):
                texts.append(part["text"])
            elif part.get("type") == "reasoning" and part.get("text"):
                reasoning.append(part["text"])

        text = "\n".join(texts).strip()
        if self.config.include_reasoning and reasoning:
            reasoning_block = "\n".join(reasoning).strip()
            text = f"<details><summary>Reasoning</summary>\n\n{reasoning_block}\n\n</details>\n\n{text}"
        return text

    async def copilot_message(self, prompt: str, agent: str = BUILD_AGENT) -> AIMessage:
        """
        Send a prompt to an OpenCode agent.

        Args:
            prompt: Full prompt text
            agent: OpenCode agent name (``plan`` is read-only, ``build`` can edit files)

        Returns:
            AIMessage with the reply text and the session id

        Raises:
            AIIntegrationError: If the server is unreachable or replies with an error
        """
        logger.debug(f"Sending prompt to OpenCode agent '{agent}' ({self.config.model})")
        async with self._client() as client:
            session = await self._post(client, "/session", {"title": "copilot"})
            session_id = session.get("id") if isinstance(session, dict) else None
            if not session_id:
                raise AIIntegrationError("OpenCode did not return a session id")

            reply = await self._post(
                client,
                f"/session/{session_id}/message",
                {
                    "parts": [{"type": "text", "text": prompt}],
                    "model": {
                        "providerID": self.config.provider_id,
                        "modelID": self.config.model_id,
                    },
                    "agent": agent,
                },
            )

        text = self._extract_text(reply)
        logger.debug(f"OpenCode session {session_id} replied with {len(text)} characters")
        return AIMessage(text=text, session_id=session_id)

    async def ask(self, prompt: str) -> AIMessage:
        """Ask the read-only plan agent."""
        return await self.copilot_message(prompt, agent=PLAN_AGENT)

    async def ask_json(self, prompt: str) -> dict[str, Any]:
        """
        Ask the plan agent and parse a JSON object out of the reply.

        Raises:
            AIIntegrationError: If the reply holds no JSON object
        """
        message = await self.ask(prompt)
        return parse_json_reply(message.text)


def parse_json_reply(text: str) -> dict[str, Any]:
    """
    Extract the first JSON object from an AI reply.

    Accepts bare JSON, fenced ```json blocks and JSON embedded in prose.

    Raises:
        AIIntegrationError: If no JSON object can be decoded
    """
    candidates = [match.strip() for match in _JSON_FENCE.findall(text)]
    candidates.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise AIIntegrationError(f"AI reply did not contain a JSON object: {text[:200]}")


__all__ = [
    "OpenCodeIntegration",
    "AIMessage",
    "AIIntegrationError",
    "BUILD_AGENT",
    "PLAN_AGENT",
    "parse_json_reply",
]
