"""
Triage External Service Adapters
==================================

Adapter for the LLM used by the triage module.

Implements the interface defined in the application layer using the
concrete infrastructure client.
"""

from typing import Any, List, Optional

from src.config import Settings
from src.infrastructure.llm import ILLMClient as InfrastructureLLMClient, create_llm_client
from src.triage.application import ILLMClient


class LLMClientAdapter(ILLMClient):
    """
    Adapter that wraps the infrastructure LLM client.

    Implements the application layer ILLMClient interface using the
    client selected by configuration (OpenAI-compatible or mock).
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[InfrastructureLLMClient] = None
    ):
        self._client = client or create_llm_client(config)

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.7,
        max_tokens: int = 3000,
        top_p: float = 1.0,
        operation: str = "chat_completion"
    ) -> Any:
        """Generate chat completion."""
        return await self._client.chat_completion(
            messages,
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
            operation=operation
        )
