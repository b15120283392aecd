"""Tests for the OpenCode integration."""

import json

import httpx
import pytest

from repo_copilot.integrations.ai import (
    AIIntegrationError,
    OpenCodeIntegration,
    parse_json_reply,
)
from repo_copilot.models import AIConfig


def opencode_server(reply, session=None, recorded=None):
    """MockTransport emulating the session and message endpoints."""

    def handler(request):
        if recorded is not None:
            recorded.append(request)
        if request.url.path == "/session":
            return httpx.Response(200, json=session if session is not None else {"id": "ses_1"})
        if request.url.path == "/session/ses_1/message":
            return httpx.Response(200, json=reply)
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


class TestOpenCodeIntegration:
    """Test OpenCodeIntegration functionality."""

    @pytest.mark.asyncio
    async def test_copilot_message(self):
        requests = []
        reply = {"parts": [{"type": "text", "text": "Done."}, {"type": "tool", "tool": "edit"}]}
        ai = OpenCodeIntegration(AIConfig(), transport=opencode_server(reply, recorded=requests))

        message = await ai.copilot_message("Fix the bug")

        assert message.text == "Done."
        assert message.session_id == "ses_1"
        body = json.loads(requests[1].content)
        assert body["agent"] == "build"
        assert body["model"] == {"providerID": "openai", "modelID": "gpt-4o-mini"}
        assert body["parts"] == [{"type": "text", "text": "Fix the bug"}]

    @pytest.mark.asyncio
    async def test_ask_uses_plan_agent(self):
        requests = []
        ai = OpenCodeIntegration(
            AIConfig(), transport=opencode_server({"parts": [{"type": "text", "text": "Answer"}]}, recorded=requests)
        )

        message = await ai.ask("Why?")

        assert message.text == "Answer"
        assert json.loads(requests[1].content)["agent"] == "plan"

    @pytest.mark.asyncio
    async def test_reasoning_is_hidden_by_default(self):
        reply = {"parts": [{"type": "reasoning", "text": "Thinking"}, {"type": "text", "text": "Answer"}]}
        ai = OpenCodeIntegration(AIConfig(), transport=opencode_server(reply))

        assert (await ai.ask("Why?")).text == "Answer"

    @pytest.mark.asyncio
    async def test_reasoning_included(self):
        reply = {"parts": [{"type": "reasoning", "text": "Thinking"}, {"type": "text", "text": "Answer"}]}
        ai = OpenCodeIntegration(AIConfig(include_reasoning=True), transport=opencode_server(reply))

        text = (await ai.ask("Why?")).text

        assert text.startswith("<details><summary>Reasoning</summary>")
        assert "Thinking" in text
        assert text.endswith("Answer")

    @pytest.mark.asyncio
    async def test_missing_session_id(self):
        ai = OpenCodeIntegration(AIConfig(), transport=opencode_server({}, session={}))

        with pytest.raises(AIIntegrationError, match="session id"):
            await ai.ask("Why?")

    @pytest.mark.asyncio
    async def test_server_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="internal"))
        ai = OpenCodeIntegration(AIConfig(), transport=transport)

        with pytest.raises(AIIntegrationError) as exc_info:
            await ai.copilot_message("Fix it")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_unreachable_server(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        ai = OpenCodeIntegration(AIConfig(), transport=httpx.MockTransport(refuse))

        with pytest.raises(AIIntegrationError, match="http://127.0.0.1:4096/session"):
            await ai.ask("Why?")

    @pytest.mark.asyncio
    async def test_ask_json(self):
        reply = {"parts": [{"type": "text", "text": '```json\n{"progress": 40, "summary": "Half"}\n```'}]}
        ai = OpenCodeIntegration(AIConfig(), transport=opencode_server(reply))

        assert await ai.ask_json("How far?") == {"progress": 40, "summary": "Half"}


class TestParseJsonReply:
    @pytest.mark.parametrize(
        "text",
        [
            '{"progress": 10}',
            'Here you go:\n```json\n{"progress": 10}\n```',
            'Sure! {"progress": 10} Hope that helps.',
        ],
    )
    def test_accepted_forms(self, text):
        assert parse_json_reply(text) == {"progress": 10}

    def test_no_json(self):
        with pytest.raises(AIIntegrationError):
            parse_json_reply("I could not determine the progress.")

    def test_json_array_is_rejected(self):
        with pytest.raises(AIIntegrationError):
            parse_json_reply("[1, 2, 3]")
