"""
LangGraph workflow construction and execution.

Defines the tool-calling loop for one conversation turn:
    - The model node asks the LLM for the next message
    - The tool node answers every requested tool call
    - The loop is capped at max_tool_rounds model calls

Graph visualization can be exported via get_graph_visualization().
"""

import logging
import time
from functools import partial
from typing import TYPE_CHECKING, Any, Literal, Optional

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from omsagent.config import settings
from omsagent.graph.state import AgentState, Message, TurnResult, create_initial_state
from omsagent.nodes import model_node, tool_node
from omsagent.tools import build_tool_schemas

if TYPE_CHECKING:
    from omsagent.llm.factory import LLMProtocol
    from omsagent.tools import ToolContext

logger = logging.getLogger(__name__)

MAX_ROUNDS_MESSAGE = "Reached maximum tool iterations. Please try a more specific question."


class _LazyLLM:
    """Resolve the shared chat client on first use rather than at graph build."""

    def complete(self, messages, tools=None, temperature=None):
        from omsagent.resources import get_llm

        return get_llm().complete(messages, tools=tools, temperature=temperature)


def should_execute_tools(state: AgentState) -> Literal["tools", "finish"]:
    """
    Conditional edge: run tools unless the model produced a final answer.

    Returns:
        "tools" if the last reply requested tool calls, "finish" otherwise
    """
    return "finish" if state.get("status") == "done" else "tools"


def make_round_guard(max_rounds: int):
    """
    Build the conditional edge that follows the tool node.

    Returns:
        A function returning "model" to ask the LLM again, or "round_limit"
        once max_rounds model calls have been made
    """

    def should_continue(state: AgentState) -> Literal["model", "round_limit"]:
        if state.get("rounds", 0) >= max_rounds:
            return "round_limit"
        return "model"

    return should_continue


def round_limit_node(state: AgentState) -> AgentState:
    """Finish the turn with the fixed round-cap message."""
    logger.warning(f"Turn stopped after {state.get('rounds', 0)} rounds")
    return {"status": "done", "final_answer": MAX_ROUNDS_MESSAGE}


def build_graph(
    llm: Optional["LLMProtocol"] = None,
    tool_context: Optional["ToolContext"] = None,
    max_rounds: Optional[int] = None,
    temperature: Optional[float] = None,
) -> CompiledStateGraph:
    """
    Build and compile the agent graph.

    Graph structure:
        START
          │
          ▼
        [model] ◄──────────────────────┐
          │                            │
          ├── finish ─────────────► END│
          │                            │
          └── tools                    │
                │                      │
                ▼                      │
            [tools] ── model ──────────┘
                │
                └── round_limit ──► [round_limit] ──► END

    Args:
        llm: Chat client (shared client from resources if None)
        tool_context: Clients and limits for tools (shared defaults if None)
        max_rounds: Round cap (default from settings)
        temperature: Sampling temperature (default from settings)

    Returns:
        Compiled LangGraph ready for execution
    """
    max_rounds = max_rounds or settings.max_tool_rounds
    temperature = settings.llm_temperature if temperature is None else temperature

    workflow = StateGraph(AgentState)

    workflow.add_node(
        "model",
        partial(
            model_node,
            llm=llm or _LazyLLM(),
            tools=build_tool_schemas(settings.max_query_rows),
            temperature=temperature,
        ),
    )
    workflow.add_node("tools", partial(tool_node, context=tool_context))
    workflow.add_node("round_limit", round_limit_node)

    workflow.add_edge(START, "model")

    workflow.add_conditional_edges(
        "model",
        should_execute_tools,
        {
            "tools": "tools",
            "finish": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        make_round_guard(max_rounds),
        {
            "model": "model",
            "round_limit": "round_limit",
        },
    )

    workflow.add_edge("round_limit", END)

    return workflow.compile()


def run_turn(
    history: list[Message],
    user_message: str,
    llm: Optional["LLMProtocol"] = None,
    tool_context: Optional["ToolContext"] = None,
    max_rounds: Optional[int] = None,
) -> TurnResult:
    """
    Run one conversation turn through the agent graph.

    The turn works on a copy of the history. On success the returned
    messages are the history plus everything this turn added; on failure
    the exception propagates and the caller's history is untouched.

    Args:
        history: Conversation so far
        user_message: The user's new message
        llm: Chat client (shared client if None)
        tool_context: Clients and limits for tools (shared defaults if None)
        max_rounds: Round cap (default from settings)

    Returns:
        TurnResult with the answer, the new conversation log and rounds used
    """
    max_rounds = max_rounds or settings.max_tool_rounds
    state = create_initial_state(history, user_message)
    graph = build_graph(llm=llm, tool_context=tool_context, max_rounds=max_rounds)

    # model + tools per round, plus the round_limit node
    config: dict[str, Any] = {"recursion_limit": 2 * max_rounds + 5}

    start_time = time.perf_counter()
    final_state = graph.invoke(state, config=config)
    elapsed_ms = (time.perf_counter() - start_time) * 1000

    rounds = final_state.get("rounds", 0)
    logger.info(f"Turn finished in {rounds} round(s), {elapsed_ms:.0f}ms")

    return TurnResult(
        answer=final_state.get("final_answer") or "",
        messages=final_state["messages"],
        rounds=rounds,
    )


def get_graph_visualization() -> str:
    """
    Generate Mermaid diagram of the workflow.

    Returns:
        Mermaid diagram string for visualization

    Example:
        >>> mermaid = get_graph_visualization()
        >>> print(mermaid)  # Paste into mermaid.live
    """
    graph = build_graph()
    return graph.get_graph().draw_mermaid()
