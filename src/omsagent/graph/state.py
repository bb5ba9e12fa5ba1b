"""
Graph state definition for the tool-calling agent loop.

Messages follow the OpenAI chat format: system, user, assistant (optionally
carrying tool calls) and tool (answering one call by id). The AgentState
TypedDict is the data that flows through the LangGraph workflow.
"""

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, TypedDict

Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""

    id: str
    """Correlation id; the answering tool message carries the same id."""

    name: str
    """Name of the requested tool."""

    arguments: str = "{}"
    """Arguments as the raw JSON string sent by the model."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ToolCall":
        function = data.get("function") or {}
        return cls(
            id=data.get("id", ""),
            name=function.get("name", ""),
            arguments=function.get("arguments") or "{}",
        )


@dataclass
class Message:
    """One entry in a conversation log."""

    role: Role
    content: Optional[str] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    """Calls requested by an assistant message, in request order."""

    tool_call_id: Optional[str] = None
    """For tool messages: the id of the call being answered."""

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_dict(self) -> dict[str, Any]:
        """Render the message in chat completions wire format."""
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Parse a message from a chat completions response."""
        return cls(
            role=data.get("role", "assistant"),
            content=data.get("content"),
            tool_calls=[ToolCall.from_dict(c) for c in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id"),
        )


class AgentState(TypedDict, total=False):
    """
    State schema for one conversation turn.

    Flow:
        1. The user message is appended to the session log
        2. The model node asks the LLM (rounds += 1)
        3. If the reply requests tools, the tool node answers every call
        4. Repeat from 2 until the model answers in text or the round cap hits
    """

    messages: list[Message]
    """Full conversation log, including the current turn."""

    rounds: int
    """Number of model calls made in this turn."""

    status: Literal["awaiting_model", "executing_tools", "done"]
    """Where the turn currently is in the model/tool cycle."""

    final_answer: Optional[str]
    """Text returned to the user once status is 'done'."""


@dataclass
class TurnResult:
    """Outcome of one conversation turn."""

    answer: str
    messages: list[Message]
    rounds: int


def create_initial_state(history: list[Message], user_message: str) -> AgentState:
    """
    Create the state for a new turn.

    The history is copied; the caller's list is never modified.

    Args:
        history: Conversation so far (starting with the system prompt)
        user_message: The user's new message

    Returns:
        AgentState ready for the model node
    """
    return AgentState(
        messages=[*history, Message.user(user_message)],
        rounds=0,
        status="awaiting_model",
        final_answer=None,
    )
