"""
Tool declarations exposed to the model.

Two tools exist: a SELECT-only SQL query against the OMS schema and a
semantic search over the knowledge base. Each has a pydantic argument model
used to validate the model's JSON arguments before dispatch, and a function
declaration in chat completions format.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

KnowledgeCategory = Literal["schema", "process", "troubleshooting", "inventory", "all"]


class ToolName(str, Enum):
    """The closed set of tools the agent can call."""

    EXECUTE_OMS_QUERY = "execute_oms_query"
    SEARCH_KNOWLEDGE_BASE = "search_knowledge_base"


class QueryArgs(BaseModel):
    """Arguments for execute_oms_query."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(description="Complete SQL SELECT query")


class SearchArgs(BaseModel):
    """Arguments for search_knowledge_base."""

    model_config = ConfigDict(extra="ignore")

    query: str = Field(min_length=1, description="Natural language search query")
    category: Optional[KnowledgeCategory] = Field(
        default=None,
        description="Optional category to narrow search scope",
    )


QUERY_TOOL_DESCRIPTION = """Execute a SQL SELECT query against the Meteo OMS database on Supabase. Only SELECT queries are allowed.

Available tables (always use oms. prefix):
- oms.orders: order_id, short_order_number, customer info, order_status, fulfillment_status, payment_status, order_total, created_at
- oms.order_lines: order_id, item_id (EAN), item_description (Thai), quantity, uom, unit_price
- oms.allocations: order_id, order_line_id, ship_from_location_id, quantity, carrier_code
- oms.releases: order_id, release_id, ship_from_location_id, carrier_code
- oms.release_lines: order_id, release_id, item_id, quantity
- oms.fulfillment_details: order_id, order_line_id, fulfillment_status, quantity
- oms.payments: order_id, payment_id, status_id
- oms.inventory_stock: store_id (004/005/007), sku, onhand, reserved, inbound
- oms.log_workflow_events: order_id, event_type, previous_status, new_status, event_timestamp

Example: SELECT order_id, order_status FROM oms.orders LIMIT 10"""

SEARCH_TOOL_DESCRIPTION = (
    "Search the OMS knowledge base for documentation, procedures, troubleshooting "
    "guides, and how-to information. Use this for questions about processes, "
    "workflows, status meanings, or how things work. NOT for querying live data."
)


def build_tool_schemas(max_rows: int = 50) -> list[dict[str, Any]]:
    """
    Build the function tool declarations sent with every completion call.

    Args:
        max_rows: Row limit the query tool tells the model to respect

    Returns:
        Tool declarations in chat completions format
    """
    return [
        {
            "type": "function",
            "function": {
                "name": ToolName.EXECUTE_OMS_QUERY.value,
                "description": QUERY_TOOL_DESCRIPTION,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": (
                                "Complete SQL SELECT query. Must start with SELECT. "
                                "Use oms. schema prefix for all tables. "
                                f"Always include LIMIT (max {max_rows})."
                            ),
                        },
                    },
                    "required": ["query"],
                },
            },
        },
        {
            "type": "function",
            "function": {
                "name": ToolName.SEARCH_KNOWLEDGE_BASE.value,
                "description": SEARCH_TOOL_DESCRIPTION,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {
                            "type": "string",
                            "description": (
                                "Natural language search query describing what "
                                "information you need"
                            ),
                        },
                        "category": {
                            "type": "string",
                            "enum": ["schema", "process", "troubleshooting", "inventory", "all"],
                            "description": "Optional category to narrow search scope",
                        },
                    },
                    "required": ["query"],
                },
            },
        },
    ]
