"""
Unit tests for the LLM client wrapper.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from review_relay.errors import ExternalServiceError, UpstreamTimeoutError
from review_relay.services.llm_client import SYSTEM_PROMPT, LLMClient, build_user_prompt


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion('{"summary": "ok"}'))
    return client


@pytest.fixture
def llm(analysis_settings, openai_client) -> LLMClient:
    return LLMClient(analysis_settings, client=openai_client)


def test_user_prompt_with_language():
    assert build_user_prompt("DIFF", "python") == "Review this python code diff:\n\nDIFF"


def test_user_prompt_without_language():
    assert build_user_prompt("DIFF") == "Review this code diff:\n\nDIFF"


def test_default_client_is_openai(analysis_settings):
    client = LLMClient(analysis_settings)
    assert client.is_azure is False
    assert client.model == "gpt-4o-mini"
    assert client.is_ready


def test_azure_client_when_configured(analysis_settings):
    settings = analysis_settings.model_copy(update={
        "azure_openai_endpoint": "https://example.openai.azure.com",
        "azure_openai_api_key": "azure_key",
        "azure_openai_deployment": "gpt-4o",
    })
    client = LLMClient(settings)
    assert client.is_azure is True
    assert client.model == "gpt-4o"


@pytest.mark.asyncio
async def test_review_diff_sends_fixed_instruction(llm, openai_client):
    content = await llm.review_diff("DIFF", "typescript")

    assert content == '{"summary": "ok"}'
    kwargs = openai_client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert kwargs["messages"][1]["content"] == "Review this typescript code diff:\n\nDIFF"


@pytest.mark.asyncio
async def test_empty_content_is_external_error(llm, openai_client):
    openai_client.chat.completions.create.return_value = completion(None)

    with pytest.raises(ExternalServiceError):
        await llm.review_diff("DIFF")


@pytest.mark.asyncio
async def test_api_error_is_external_error(llm, openai_client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    openai_client.chat.completions.create.side_effect = openai.APIConnectionError(request=request)

    with pytest.raises(ExternalServiceError) as exc_info:
        await llm.review_diff("DIFF")

    assert exc_info.value.message == "Failed to generate code review"


@pytest.mark.asyncio
async def test_api_timeout_is_timeout_error(llm, openai_client):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    openai_client.chat.completions.create.side_effect = openai.APITimeoutError(request=request)

    with pytest.raises(UpstreamTimeoutError):
        await llm.review_diff("DIFF")
