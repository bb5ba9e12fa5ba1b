"""
Unit tests for tool declarations, argument validation and dispatch.
"""

import json
from unittest.mock import MagicMock

import pytest

from omsagent.retrieval.store import StoreError
from omsagent.tools import ToolContext, ToolName, build_tool_schemas, execute_tool
from omsagent.tools.executor import (
    NO_RESULTS_PAYLOAD,
    apply_row_limit,
    format_search_results,
    normalize_select,
    parse_arguments,
)


@pytest.mark.unit
class TestToolSchemas:
    def test_two_function_tools(self):
        schemas = build_tool_schemas()

        names = [s["function"]["name"] for s in schemas]
        assert names == ["execute_oms_query", "search_knowledge_base"]
        assert all(s["type"] == "function" for s in schemas)

    def test_query_tool_mentions_row_limit(self):
        schema = build_tool_schemas(max_rows=25)[0]

        description = schema["function"]["parameters"]["properties"]["query"]["description"]
        assert "max 25" in description
        assert schema["function"]["parameters"]["required"] == ["query"]

    def test_search_tool_category_enum(self):
        schema = build_tool_schemas()[1]

        category = schema["function"]["parameters"]["properties"]["category"]
        assert category["enum"] == ["schema", "process", "troubleshooting", "inventory", "all"]


@pytest.mark.unit
class TestSelectValidation:
    @pytest.mark.parametrize(
        "sql,expected",
        [
            ("SELECT 1", "SELECT 1"),
            ("  select * from oms.orders;  ", "select * from oms.orders"),
            ("SELECT 1;;;", "SELECT 1"),
            ("DROP TABLE oms.orders", None),
            ("WITH x AS (SELECT 1) SELECT * FROM x", None),
            ("", None),
        ],
    )
    def test_normalize_select(self, sql, expected):
        assert normalize_select(sql) == expected

    @pytest.mark.parametrize(
        "sql",
        [
            "SELECT * FROM oms.orders",
            "SELECT * FROM oms.orders LIMIT 10",
            "SELECT * FROM oms.orders limit 500",
            "SELECT * FROM oms.orders LIMIT 100 OFFSET 20",
            "SELECT * FROM oms.orders LIMIT ALL",
            "SELECT * FROM oms.orders FETCH FIRST 1000 ROWS ONLY",
            "SELECT * FROM oms.orders -- newest first",
        ],
    )
    def test_apply_row_limit_wraps_statement(self, sql):
        capped = apply_row_limit(sql, 50)

        assert capped == f"SELECT * FROM (\n{sql}\n) AS capped_rows LIMIT 50"

    def test_trailing_comment_cannot_hide_cap(self):
        capped = apply_row_limit("SELECT * FROM oms.orders -- newest first", 50)

        last_line = capped.splitlines()[-1]
        assert last_line == ") AS capped_rows LIMIT 50"
        assert "--" not in last_line


@pytest.mark.unit
class TestExecuteOmsQuery:
    def test_select_runs_and_returns_json(self, tool_context, fake_store):
        fake_store.rows = [{"order_status": "Allocated", "count": 8}]

        result = execute_tool("execute_oms_query", '{"query": "SELECT order_status FROM oms.orders;"}', tool_context)

        assert json.loads(result) == [{"order_status": "Allocated", "count": 8}]
        assert fake_store.queries == ["SELECT order_status FROM oms.orders"]

    def test_non_select_rejected_without_store_call(self, tool_context, fake_store):
        result = execute_tool("execute_oms_query", '{"query": "DROP TABLE oms.orders"}', tool_context)

        assert json.loads(result) == {"error": "Only SELECT queries are allowed."}
        assert fake_store.queries == []

    def test_store_error_payload_passed_through(self, tool_context, fake_store):
        fake_store.rows = {"error": "Supabase error 400: syntax error"}

        result = execute_tool("execute_oms_query", {"query": "SELECT nope"}, tool_context)

        assert json.loads(result) == {"error": "Supabase error 400: syntax error"}

    def test_thai_text_not_escaped(self, tool_context, fake_store):
        fake_store.rows = [{"item_description": "น้ำดื่ม"}]

        result = execute_tool("execute_oms_query", {"query": "SELECT 1"}, tool_context)

        assert "น้ำดื่ม" in result

    def test_limit_enforced_when_enabled(self, fake_store, fake_embedder):
        context = ToolContext(
            store=fake_store, embedder=fake_embedder, enforce_query_limit=True, max_query_rows=20
        )

        execute_tool("execute_oms_query", {"query": "SELECT * FROM oms.inventory_stock"}, context)

        assert fake_store.queries == [
            "SELECT * FROM (\nSELECT * FROM oms.inventory_stock\n) AS capped_rows LIMIT 20"
        ]

    def test_limit_enforced_despite_trailing_comment(self, fake_store, fake_embedder):
        context = ToolContext(
            store=fake_store, embedder=fake_embedder, enforce_query_limit=True, max_query_rows=50
        )

        execute_tool("execute_oms_query", {"query": "SELECT * FROM oms.orders -- newest first"}, context)

        assert fake_store.queries[0].endswith("\n) AS capped_rows LIMIT 50")

    def test_limit_advisory_by_default(self, tool_context, fake_store):
        execute_tool("execute_oms_query", {"query": "SELECT * FROM oms.inventory_stock"}, tool_context)

        assert fake_store.queries == ["SELECT * FROM oms.inventory_stock"]


@pytest.mark.unit
class TestSearchKnowledgeBase:
    def test_formats_ranked_results(self, tool_context, fake_store, sample_results):
        fake_store.matches = sample_results

        result = execute_tool("search_knowledge_base", {"query": "stuck in allocated"}, tool_context)

        blocks = result.split("\n\n---\n\n")
        assert len(blocks) == 2
        assert blocks[0].startswith("[1] (similarity: 0.910, source: order-status-flow.md)\n")
        assert blocks[1].startswith("[2] (similarity: 0.820, source: troubleshooting.md)\n")

    def test_category_filter(self, tool_context, fake_store, sample_results):
        fake_store.matches = sample_results

        result = execute_tool(
            "search_knowledge_base",
            {"query": "release", "category": "troubleshooting"},
            tool_context,
        )

        assert result.startswith("[1] (similarity: 0.820, source: troubleshooting.md)")
        assert "---" not in result

    def test_category_all_keeps_everything(self, tool_context, fake_store, sample_results):
        fake_store.matches = sample_results

        result = execute_tool("search_knowledge_base", {"query": "x", "category": "all"}, tool_context)

        assert result.count("similarity:") == 2

    def test_no_results_marker(self, tool_context, fake_store):
        fake_store.matches = []

        result = execute_tool("search_knowledge_base", {"query": "nothing"}, tool_context)

        assert result == NO_RESULTS_PAYLOAD
        assert json.loads(result) == {"message": "No relevant documents found."}

    def test_filter_removing_all_results_gives_marker(self, tool_context, fake_store, sample_results):
        fake_store.matches = sample_results

        result = execute_tool("search_knowledge_base", {"query": "x", "category": "inventory"}, tool_context)

        assert result == NO_RESULTS_PAYLOAD

    def test_uses_context_limits(self, fake_store, fake_embedder):
        context = ToolContext(
            store=fake_store, embedder=fake_embedder, match_count=3, similarity_threshold=0.7
        )

        execute_tool("search_knowledge_base", {"query": "x"}, context)

        assert fake_store.match_calls[0]["match_count"] == 3
        assert fake_store.match_calls[0]["threshold"] == 0.7

    def test_store_failure_raises(self, fake_embedder):
        store = MagicMock()
        store.match_documents.side_effect = StoreError("match_documents failed: 500", 500)
        context = ToolContext(store=store, embedder=fake_embedder)

        with pytest.raises(StoreError):
            execute_tool("search_knowledge_base", {"query": "x"}, context)

    def test_format_search_results_empty(self):
        assert format_search_results([]) == ""


@pytest.mark.unit
class TestDispatch:
    def test_unknown_tool(self, tool_context, fake_store):
        result = execute_tool("drop_database", "{}", tool_context)

        assert json.loads(result) == {"error": "Unknown tool: drop_database"}
        assert fake_store.queries == []

    def test_missing_required_argument(self, tool_context, fake_store):
        result = json.loads(execute_tool("execute_oms_query", "{}", tool_context))

        assert result["error"].startswith("Invalid arguments for execute_oms_query: query:")
        assert fake_store.queries == []

    def test_invalid_category(self, tool_context):
        result = json.loads(
            execute_tool("search_knowledge_base", {"query": "x", "category": "billing"}, tool_context)
        )

        assert "Invalid arguments for search_knowledge_base" in result["error"]
        assert "category" in result["error"]

    def test_malformed_json_is_treated_as_empty(self, tool_context):
        result = json.loads(execute_tool("execute_oms_query", "{not json", tool_context))

        assert "Invalid arguments" in result["error"]

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('{"query": "SELECT 1"}', {"query": "SELECT 1"}),
            ({"query": "x"}, {"query": "x"}),
            ("[1, 2]", {}),
            ("", {}),
            (None, {}),
            ("{bad", {}),
        ],
    )
    def test_parse_arguments(self, raw, expected):
        assert parse_arguments(raw) == expected

    def test_tool_names_enum(self):
        assert ToolName("execute_oms_query") is ToolName.EXECUTE_OMS_QUERY
        with pytest.raises(ValueError):
            ToolName("unknown")
