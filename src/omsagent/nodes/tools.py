"""
Tool node: answers every tool call from the last assistant message.

Calls run one at a time in the order the model requested them, and each
produces exactly one tool message carrying the call's id.
"""

import logging
from typing import TYPE_CHECKING, Optional

from omsagent.tools import execute_tool

if TYPE_CHECKING:
    from omsagent.graph.state import AgentState
    from omsagent.tools import ToolContext

logger = logging.getLogger(__name__)

LOG_PREVIEW_CHARS = 200


def _preview(text: str, limit: int = LOG_PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def tool_node(state: "AgentState", context: Optional["ToolContext"] = None) -> "AgentState":
    """
    Execute the tool calls requested by the last assistant message.

    Args:
        state: Current agent state; the last message carries the tool calls
        context: Clients and limits for the tools (shared defaults if None)

    Returns:
        State update with one tool message per call appended, in order
    """
    # Import at runtime to avoid circular imports
    from omsagent.graph.state import Message  # noqa: PLC0415

    messages = state["messages"]
    calls = messages[-1].tool_calls

    results: list[Message] = []
    for call in calls:
        logger.info(f"[tool] {call.name}({_preview(call.arguments)})")
        result = execute_tool(call.name, call.arguments, context)
        logger.info(f"[result] {_preview(result)}")
        results.append(Message.tool(call.id, result))

    return {"messages": [*messages, *results], "status": "awaiting_model"}
