"""
LLM Client Infrastructure
==========================

Wrapper for OpenAI-compatible chat completion providers, providing a clean
interface for the classifier and the two responders.

This module abstracts the LLM client implementation following the
Dependency Inversion Principle - the triage layers depend on abstractions,
not concrete implementations.
"""

import json
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import openai
from openai import AsyncOpenAI

from src.config import Settings, settings as default_settings
from src.core import LLMException, ConfigurationException


class ChatCompletionResult:
    """Result of a chat completion."""

    def __init__(
        self,
        content: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int
    ):
        self.content = content
        self.model = model
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.total_tokens = prompt_tokens + completion_tokens
        self.latency_ms = latency_ms


class ILLMClient(ABC):
    """
    Interface for LLM client operations.

    Following Interface Segregation Principle - only methods
    actually needed by the application are defined.
    """

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.7,
        max_tokens: int = 3000,
        top_p: float = 1.0,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Generate chat completion."""


class OpenAILLMClient(ILLMClient):
    """
    OpenAI client implementation for GPT models.

    Any OpenAI-compatible provider works by pointing ``llm_base_url`` at it.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[Settings] = None
    ):
        config = config or default_settings
        self._api_key = api_key or config.openai_api_key
        if not self._api_key:
            raise ConfigurationException("OpenAI API key not configured")

        self._client = AsyncOpenAI(
            api_key=self._api_key,
            base_url=config.llm_base_url,
            timeout=config.llm_timeout_seconds,
            max_retries=0
        )
        self._model = config.llm_model

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.7,
        max_tokens: int = 3000,
        top_p: float = 1.0,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Generate chat completion using OpenAI GPT.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
            top_p: Nucleus sampling mass
            operation: Operation type for logging (classification, diagnostic, remediation)

        Returns:
            ChatCompletionResult with generated text (may be empty)

        Raises:
            LLMException: If completion fails
        """
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p
            )
        except openai.AuthenticationError as e:
            raise LLMException("OpenAI API authentication failed", {"operation": operation}) from e
        except openai.RateLimitError as e:
            raise LLMException("Rate limit exceeded. Please try again later.", {"operation": operation}) from e
        except openai.APITimeoutError as e:
            raise LLMException("Chat completion timed out", {"operation": operation}) from e
        except openai.OpenAIError as e:
            raise LLMException(f"Chat completion failed: {str(e)}", {"operation": operation}) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        usage = response.usage
        return ChatCompletionResult(
            content=content,
            model=response.model or self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=latency_ms
        )


class MockLLMClient(ILLMClient):
    """
    Mock LLM client for local development.

    Returns predictable responses without calling external APIs.
    """

    CATEGORY_HINTS = {
        "vlan": "Networking",
        "bgp": "Networking",
        "switch": "Networking",
        "idrac": "HardwareComponents",
        "ilo": "HardwareComponents",
        "psu": "HardwareComponents",
        "raid": "HardwareComponents",
        "ansible": "ScriptAutomation",
        "powershell": "ScriptAutomation",
        "terraform": "ScriptAutomation",
        "service": "ServerOS",
        "windows": "ServerOS",
        "linux": "ServerOS",
    }

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.7,
        max_tokens: int = 3000,
        top_p: float = 1.0,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """Return mock response based on operation type."""
        user_content = str(messages[-1].get("content", "")) if messages else ""

        if operation == "classification":
            lowered = user_content.lower()
            category = next(
                (label for hint, label in self.CATEGORY_HINTS.items() if hint in lowered),
                "Unknown"
            )
            content = f"```json\n{json.dumps({'category': category})}\n```"
        elif operation == "remediation":
            content = (
                "E) Remediation Plan (mock)\n"
                "1. Apply the change inside the approved maintenance window\n"
                "2. Rollback: restore the saved configuration\n"
                "3. Validate: confirm the symptom no longer reproduces"
            )
        else:
            content = (
                "A) Quick Triage (mock)\n"
                "- Scope and impact not yet confirmed\n"
                "B) Likely Causes\n"
                "1. Recent change on the affected component\n"
                "C) Evidence to Collect\n"
                "- Relevant logs around the first failure"
            )

        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=100
        )


def create_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """Build the configured LLM client (mock or OpenAI-compatible)."""
    config = config or default_settings
    if config.mock_llm:
        return MockLLMClient()
    return OpenAILLMClient(config=config)
