"""
LangGraph workflow definition and state management.

Components:
    - state: Messages, tool calls and the AgentState schema
    - workflow: Graph construction and turn execution
"""

from omsagent.graph.state import AgentState, Message, ToolCall, TurnResult
from omsagent.graph.workflow import build_graph, run_turn

__all__ = [
    "AgentState",
    "Message",
    "ToolCall",
    "TurnResult",
    "build_graph",
    "run_turn",
]
