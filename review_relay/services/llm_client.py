"""
LLM client for the model backend.

Wraps the OpenAI (or Azure OpenAI) chat completions API as an opaque
text-completion call. Parsing the reply is left to the sanitizer.
"""

import time
from typing import Optional

import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

from review_relay.config import AnalysisSettings
from review_relay.errors import ExternalServiceError, UpstreamTimeoutError
from review_relay.utils.logging import get_logger, log_api_call

logger = get_logger(__name__)

AZURE_API_VERSION = "2024-02-15-preview"

SYSTEM_PROMPT = """You are a senior code reviewer. Given a unified diff, return JSON code review suggestions with summary and comments.

You must respond ONLY with valid JSON matching this exact structure:
{
  "summary": "A brief summary of the code review",
  "comments": [
    {
      "file": "path/to/file.ts",
      "line": 10,
      "severity": "info" | "warning" | "error",
      "message": "Your review comment here"
    }
  ]
}

Be constructive and helpful in your feedback. Focus on code quality, potential bugs, performance issues, and best practices."""


def build_user_prompt(diff: str, language: Optional[str] = None) -> str:
    """Build the user message for a diff review."""
    if language:
        return f"Review this {language} code diff:\n\n{diff}"
    return f"Review this code diff:\n\n{diff}"


class LLMClient:
    """Wrapper for OpenAI/Azure OpenAI API client."""

    def __init__(self, settings: AnalysisSettings, client: Optional[AsyncOpenAI] = None):
        """Initialize LLM client based on configuration."""
        self.temperature = settings.llm_temperature

        if client is not None:
            self.client = client
            self.model = settings.openai_model
            self.is_azure = False
        elif settings.azure_openai_endpoint and settings.azure_openai_api_key:
            self.client = AsyncAzureOpenAI(
                api_key=settings.azure_openai_api_key,
                api_version=AZURE_API_VERSION,
                azure_endpoint=settings.azure_openai_endpoint,
                timeout=settings.llm_timeout_seconds,
                max_retries=0,
            )
            self.model = settings.azure_openai_deployment or settings.openai_model
            self.is_azure = True
            logger.info("Initialized Azure OpenAI client")
        else:
            self.client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.llm_timeout_seconds,
                max_retries=0,
            )
            self.model = settings.openai_model
            self.is_azure = False
            logger.info("Initialized OpenAI client")

    @property
    def is_ready(self) -> bool:
        return self.client is not None

    async def review_diff(self, diff: str, language: Optional[str] = None) -> str:
        """
        Ask the model to review a diff.

        Args:
            diff: Unified diff text
            language: Optional language hint

        Returns:
            Raw text content of the model reply

        Raises:
            UpstreamTimeoutError: The call timed out
            ExternalServiceError: The API failed or returned no content
        """
        start_time = time.time()
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_user_prompt(diff, language)},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except openai.APITimeoutError as e:
            self._log_call(start_time, error=str(e))
            raise UpstreamTimeoutError("Timed out waiting for the model backend") from e
        except openai.APIError as e:
            self._log_call(start_time, error=f"{type(e).__name__}: {e}")
            raise ExternalServiceError("Failed to generate code review") from e

        self._log_call(start_time)

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            logger.error("No response content from model backend", extra={"diff_length": len(diff)})
            raise ExternalServiceError("Failed to generate code review")

        return content

    def _log_call(self, start_time: float, error: Optional[str] = None) -> None:
        log_api_call(
            logger,
            service="openai",
            endpoint="chat.completions",
            method="POST",
            duration_ms=(time.time() - start_time) * 1000,
            error=error,
        )
