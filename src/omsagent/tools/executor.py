"""
Tool dispatch and result formatting.

`execute_tool` parses the model's JSON arguments, validates them against the
tool's argument model and runs the matching handler from TOOL_HANDLERS.
Bad input never raises: non-SELECT SQL, invalid arguments and unknown tool
names all come back as JSON error payloads the model can react to. Failures
of the embedding or similarity-search calls do raise.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from pydantic import BaseModel, ValidationError

from omsagent.config import settings
from omsagent.tools.schemas import QueryArgs, SearchArgs, ToolName

if TYPE_CHECKING:
    from omsagent.retrieval.embeddings import EmbeddingClient
    from omsagent.retrieval.store import SearchResult, SupabaseStore

logger = logging.getLogger(__name__)

NO_RESULTS_PAYLOAD = json.dumps({"message": "No relevant documents found."})
SELECT_ONLY_ERROR = {"error": "Only SELECT queries are allowed."}

TRAILING_SEMICOLONS = re.compile(r";+$")
ROW_CAP_ALIAS = "capped_rows"


@dataclass
class ToolContext:
    """Upstream clients and limits a tool handler may use."""

    store: "SupabaseStore"
    embedder: "EmbeddingClient"
    match_count: int = 5
    similarity_threshold: float = 0.5
    enforce_query_limit: bool = False
    max_query_rows: int = 50

    @classmethod
    def default(cls) -> "ToolContext":
        """Build a context from the shared clients and settings."""
        from omsagent.resources import get_embedder, get_store

        return cls(
            store=get_store(),
            embedder=get_embedder(),
            match_count=settings.search_match_count,
            similarity_threshold=settings.similarity_threshold,
            enforce_query_limit=settings.enforce_query_limit,
            max_query_rows=settings.max_query_rows,
        )


def normalize_select(sql: str) -> Optional[str]:
    """
    Return the statement without trailing semicolons if it is a SELECT.

    Returns:
        The trimmed statement, or None when it does not start with SELECT
        (case-insensitive)
    """
    trimmed = TRAILING_SEMICOLONS.sub("", sql.strip())
    if not trimmed.upper().startswith("SELECT"):
        return None
    return trimmed


def apply_row_limit(sql: str, max_rows: int) -> str:
    """
    Cap a SELECT statement at max_rows.

    The statement is wrapped as a subquery rather than edited, so its own
    LIMIT / FETCH clauses stay valid and a trailing `--` comment cannot
    swallow the cap (it ends at the newline before the closing paren).

    Example:
        >>> apply_row_limit("SELECT * FROM oms.orders", 50)
        'SELECT * FROM (\\nSELECT * FROM oms.orders\\n) AS capped_rows LIMIT 50'
    """
    return f"SELECT * FROM (\n{sql}\n) AS {ROW_CAP_ALIAS} LIMIT {max_rows}"


def run_oms_query(args: QueryArgs, context: ToolContext) -> str:
    """Run a SELECT statement and return the rows as JSON text."""
    sql = normalize_select(args.query)
    if sql is None:
        logger.warning(f"Rejected non-SELECT query: {args.query[:80]}")
        return json.dumps(SELECT_ONLY_ERROR)

    if context.enforce_query_limit:
        sql = apply_row_limit(sql, context.max_query_rows)

    result = context.store.execute_query(sql)
    return json.dumps(result, indent=2, ensure_ascii=False, default=str)


def format_search_results(results: list["SearchResult"]) -> str:
    """
    Format search results as ranked text blocks.

    Example block:
        [1] (similarity: 0.873, source: troubleshooting.md)
        Orders stay in Allocated when...
    """
    blocks = [
        f"[{rank}] (similarity: {result.similarity:.3f}, source: {result.source})\n"
        f"{result.content}"
        for rank, result in enumerate(results, start=1)
    ]
    return "\n\n---\n\n".join(blocks)


def run_knowledge_search(args: SearchArgs, context: ToolContext) -> str:
    """Search the knowledge base, filter by category and format the hits."""
    query_embedding = context.embedder.embed_query(args.query)
    results = context.store.match_documents(
        query_embedding.tolist(),
        match_count=context.match_count,
        threshold=context.similarity_threshold,
    )

    if args.category and args.category != "all":
        results = [r for r in results if r.category == args.category]

    if not results:
        return NO_RESULTS_PAYLOAD

    return format_search_results(results)


ToolHandler = Callable[[Any, ToolContext], str]

TOOL_HANDLERS: dict[ToolName, tuple[type[BaseModel], ToolHandler]] = {
    ToolName.EXECUTE_OMS_QUERY: (QueryArgs, run_oms_query),
    ToolName.SEARCH_KNOWLEDGE_BASE: (SearchArgs, run_knowledge_search),
}


def parse_arguments(arguments: Union[str, dict[str, Any], None]) -> dict[str, Any]:
    """Decode the model's argument payload; anything unparsable becomes {}."""
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    try:
        decoded = json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning(f"Malformed tool arguments: {arguments[:80]}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


def execute_tool(
    name: str,
    arguments: Union[str, dict[str, Any], None],
    context: Optional[ToolContext] = None,
) -> str:
    """
    Run a tool by name.

    Args:
        name: Tool name as requested by the model
        arguments: JSON argument string (or already-decoded dict)
        context: Clients and limits (default: shared clients and settings)

    Returns:
        Text payload for the tool message: JSON for query results and
        errors, ranked text blocks for search results

    Raises:
        httpx.HTTPError: If the embedding call fails
        StoreError: If the similarity search fails
    """
    try:
        tool = ToolName(name)
    except ValueError:
        return json.dumps({"error": f"Unknown tool: {name}"})

    args_model, handler = TOOL_HANDLERS[tool]
    try:
        args = args_model.model_validate(parse_arguments(arguments))
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        return json.dumps({"error": f"Invalid arguments for {tool.value}: {errors}"})

    return handler(args, context or ToolContext.default())
