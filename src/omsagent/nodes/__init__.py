"""
LangGraph nodes for the tool-calling agent.

Each node takes the current AgentState and returns a state update:
    - model_node: Ask the LLM for the next assistant message
    - tool_node: Execute the requested tool calls in order
"""

from omsagent.nodes.model import NO_RESPONSE_MESSAGE, SYSTEM_PROMPT, model_node
from omsagent.nodes.tools import tool_node

__all__ = [
    "NO_RESPONSE_MESSAGE",
    "SYSTEM_PROMPT",
    "model_node",
    "tool_node",
]
