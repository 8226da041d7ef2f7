"""Tests for the LLM client and agents."""

import json

import httpx
import pytest

from genieflow.agents.grant_writing import GrantWritingAgent
from genieflow.services.llm_client import LLMClient


def make_client(handler):
    return LLMClient(api_key="test-key", base_url="https://llm.test/api/v1", transport=httpx.MockTransport(handler))


def test_chat_completion_returns_content():
    """Test the response text is returned and headers are sent."""
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Proposal text"}}]})

    client = make_client(handler)
    text = client.chat_completion(
        model="openai/gpt-4-turbo",
        messages=[{"role": "system", "content": "Be helpful."}, {"role": "user", "content": "Write"}],
    )

    assert text == "Proposal text"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "openai/gpt-4-turbo"
    assert seen["body"]["messages"][0]["content"].startswith("SECURITY WARNINGS:")
    assert seen["body"]["messages"][0]["content"].endswith("Be helpful.")


def test_security_warning_does_not_modify_caller_messages():
    """Test the caller's message list is left untouched."""
    client = LLMClient(api_key="test-key")
    messages = [{"role": "user", "content": "Write"}]

    secured = client._add_security_warnings(messages)

    assert messages == [{"role": "user", "content": "Write"}]
    assert secured[0]["role"] == "system"
    assert secured[1] == {"role": "user", "content": "Write"}


def test_client_errors_are_not_retried():
    """Test a 400 response raises immediately."""
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(400, json={"error": "bad request"})

    client = make_client(handler)

    with pytest.raises(httpx.HTTPStatusError):
        client.chat_completion(model="m", messages=[{"role": "user", "content": "Write"}])
    assert len(calls) == 1


def test_agent_rejects_empty_text(fake_llm):
    """Test an empty model answer is an error."""
    fake_llm.texts = ["   "]

    with pytest.raises(ValueError):
        GrantWritingAgent(fake_llm).generate("Write a proposal")


def test_agent_sends_instructions(fake_llm):
    """Test the agent passes its model and instructions."""
    result = GrantWritingAgent(fake_llm).generate("Write a proposal")

    assert result.text == fake_llm.texts[0]
    call = fake_llm.calls[0]
    assert call["model"] == GrantWritingAgent.MODEL
    assert call["messages"][0] == {"role": "system", "content": GrantWritingAgent.INSTRUCTIONS}
    assert call["messages"][1] == {"role": "user", "content": "Write a proposal"}
