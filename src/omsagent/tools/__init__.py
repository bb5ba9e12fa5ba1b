"""
Tools the agent can call.

    - execute_oms_query: SELECT-only SQL against the OMS schema
    - search_knowledge_base: semantic search over ingested documentation
"""

from omsagent.tools.executor import ToolContext, execute_tool
from omsagent.tools.schemas import QueryArgs, SearchArgs, ToolName, build_tool_schemas

__all__ = [
    "ToolContext",
    "execute_tool",
    "QueryArgs",
    "SearchArgs",
    "ToolName",
    "build_tool_schemas",
]
