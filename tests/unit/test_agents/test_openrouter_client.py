import json

import httpx
import pytest

from challenge_builder.agents.adapters.base import AgentAuthenticationError
from challenge_builder.agents.adapters.openrouter import OpenRouterClient, _message_text


def _client(handler) -> OpenRouterClient:
    return OpenRouterClient(
        model="anthropic/claude-sonnet-4",
        api_key="test-key",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_complete_sends_prompts_and_reads_usage():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "model": "anthropic/claude-sonnet-4",
                "choices": [{"message": {"role": "assistant", "content": '{"summary": "ok"}'}}],
                "usage": {"prompt_tokens": 120, "completion_tokens": 30},
            },
        )

    completion = await _client(handler).complete("system", "user", temperature=0.2, max_output_tokens=256)

    assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user"},
    ]
    assert seen["body"]["temperature"] == 0.2
    assert seen["body"]["max_tokens"] == 256
    assert completion.text == '{"summary": "ok"}'
    assert completion.input_tokens == 120
    assert completion.output_tokens == 30
    assert completion.cost_usd > 0


@pytest.mark.asyncio
async def test_omits_unset_generation_settings():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]})

    completion = await _client(handler).complete("s", "u")

    assert "temperature" not in seen["body"]
    assert "max_tokens" not in seen["body"]
    assert completion.model == "anthropic/claude-sonnet-4"


@pytest.mark.asyncio
async def test_auth_failure():
    client = _client(lambda request: httpx.Response(401, json={"error": "bad key"}))

    with pytest.raises(AgentAuthenticationError, match="OPENROUTER_API_KEY"):
        await client.complete("s", "u")


@pytest.mark.asyncio
async def test_server_error():
    client = _client(lambda request: httpx.Response(502, text="upstream down"))

    with pytest.raises(RuntimeError, match="502"):
        await client.complete("s", "u")


@pytest.mark.asyncio
async def test_error_payload_and_empty_choices():
    error_client = _client(lambda request: httpx.Response(200, json={"error": {"message": "overloaded"}}))
    empty_client = _client(lambda request: httpx.Response(200, json={"choices": []}))

    with pytest.raises(RuntimeError, match="overloaded"):
        await error_client.complete("s", "u")
    with pytest.raises(RuntimeError, match="no choices"):
        await empty_client.complete("s", "u")


def test_message_text_flattens_content_parts():
    message = {"content": [{"type": "text", "text": "{\"a\": "}, {"type": "text", "text": "1}"}]}

    assert _message_text(message) == '{"a": 1}'
    assert _message_text({"content": None}) == ""
