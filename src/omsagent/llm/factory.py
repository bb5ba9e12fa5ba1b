"""
LLM factory for creating chat clients based on configuration.

Anything with a `complete(messages, tools, temperature)` method can drive
the agent loop; tests pass scripted fakes through the same protocol.
"""

from typing import TYPE_CHECKING, Any, Optional, Protocol

from omsagent.graph.state import Message

if TYPE_CHECKING:
    from omsagent.llm.client import ChatCompletionClient


class LLMProtocol(Protocol):
    """Protocol that all chat clients must implement."""

    def complete(
        self,
        messages: list[Message],
        tools: Optional[list[dict[str, Any]]] = None,
        temperature: Optional[float] = None,
    ) -> Optional[Message]:
        """Return the next assistant message, or None if the model gave nothing."""
        ...


def create_llm(temperature: float | None = None) -> "ChatCompletionClient":
    """
    Create a chat client from configuration settings.

    Args:
        temperature: Optional temperature override. If None, uses settings.llm_temperature

    Returns:
        ChatCompletionClient pointed at the configured gateway
    """
    from omsagent.config import settings
    from omsagent.llm.client import ChatCompletionClient

    temp = temperature if temperature is not None else settings.llm_temperature

    return ChatCompletionClient(
        base_url=settings.llm_base_url,
        model=settings.llm_model,
        api_key=settings.llm_api_key_value,
        temperature=temp,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.request_timeout,
    )
