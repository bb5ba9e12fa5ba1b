"""LLM clients for omsagent."""

from omsagent.llm.client import ChatCompletionClient
from omsagent.llm.factory import LLMProtocol, create_llm

__all__ = ["ChatCompletionClient", "LLMProtocol", "create_llm"]
