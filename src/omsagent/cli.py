"""
Command-line interface for the OMS agent.

Commands:
    serve         - Start the FastAPI server
    chat          - Interactive chat session
    ask           - Ask a single question
    ingest        - Add a document to the knowledge base
    seed          - Ingest every markdown file in a directory
    search        - Semantic search over the knowledge base
    stats         - Chunk counts per category
    check         - Verify the LLM gateway responds
    export-graph  - Write knowledge graph data for the visualizer
    version       - Show version information
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="omsagent",
    help="Tool-calling assistant for Meteo OMS operations",
    add_completion=False,
)
console = Console()

EXIT_WORDS = {"quit", "exit"}


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, help="Override LOG_LEVEL"),
) -> None:
    """Configure logging before running a command."""
    from omsagent.config import configure_logging

    configure_logging(log_level.upper() if log_level else None)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind (default from settings)"),
    port: Optional[int] = typer.Option(None, help="Port to bind (default from settings)"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the FastAPI server."""
    import uvicorn

    from omsagent.config import settings

    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"[green]Starting OMS agent server on {host}:{port}[/green]")
    console.print(f"[dim]Model: {settings.llm_model}[/dim]")

    uvicorn.run(
        "omsagent.api.main:app",
        host=host,
        port=port,
        reload=reload,
        workers=1,  # Sessions live in process memory
    )


@app.command()
def chat() -> None:
    """Start an interactive chat session."""
    from omsagent.config import settings
    from omsagent.service import AgentService

    service = AgentService()
    session_id = service.registry.create().session_id

    console.print("[bold]Meteo OMS AI Assistant (CLI)[/bold]")
    console.print(f"[dim]Model: {settings.llm_model}[/dim]")
    console.print('Type your question, or "quit" to exit.\n')

    while True:
        try:
            text = console.input("[blue]You:[/blue] ").strip()
        except (EOFError, KeyboardInterrupt):
            text = ""

        if not text or text.lower() in EXIT_WORDS:
            console.print("Bye!")
            return

        try:
            with console.status("[bold green]Thinking..."):
                reply = service.chat(session_id, text)
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]\n")
            continue

        console.print(f"\n[green]Agent:[/green] {reply.response}\n")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show round count"),
) -> None:
    """Ask a single question in a fresh session."""
    from omsagent.service import AgentService

    service = AgentService()
    console.print(f"[blue]Question:[/blue] {question}\n")

    try:
        with console.status("[bold green]Processing..."):
            reply = service.chat(None, question)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    service.delete_session(reply.session_id)

    console.print("[green]Answer:[/green]")
    console.print(reply.response)

    if verbose:
        console.print(f"\n[dim]Rounds: {reply.rounds}[/dim]")


@app.command()
def ingest(
    path: Path = typer.Argument(..., help="Text or markdown file to ingest"),
    category: Optional[str] = typer.Option(None, help="Knowledge base category"),
    title: Optional[str] = typer.Option(None, help="Document title"),
) -> None:
    """Add a document to the knowledge base."""
    from omsagent.retrieval.ingestion import category_for
    from omsagent.service import AgentService

    if not path.is_file():
        console.print(f"[red]File not found: {path}[/red]")
        raise typer.Exit(1)

    metadata = {
        "source": path.name,
        "category": category or category_for(path),
        "title": title or path.stem.replace("-", " "),
    }

    try:
        with console.status(f"[bold green]Ingesting {path.name}..."):
            result = AgentService().ingest(path.read_text(encoding="utf-8"), metadata)
    except Exception as e:
        console.print(f"[red]Ingest failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ {path.name}: {result.chunks_stored} chunks stored[/green]")


@app.command()
def seed(
    directory: Optional[Path] = typer.Argument(None, help="Directory with markdown files"),
) -> None:
    """Ingest every markdown file in a directory into the knowledge base."""
    from omsagent.config import settings
    from omsagent.retrieval.ingestion import seed_knowledge_base

    directory = directory or settings.knowledge_dir
    if not directory.is_dir():
        console.print(f"[red]Knowledge directory not found: {directory}[/red]")
        raise typer.Exit(1)

    console.print(f"[blue]Seeding knowledge base from {directory}...[/blue]\n")

    try:
        counts = seed_knowledge_base(directory)
    except Exception as e:
        console.print(f"[red]Seed failed: {e}[/red]")
        raise typer.Exit(1)

    if not counts:
        console.print(f"[yellow]No markdown files found in {directory}[/yellow]")
        return

    for name, count in counts.items():
        console.print(f"[green]  ✓ {name}: {count} chunks[/green]")
    console.print(f"\n[bold green]Done! Total chunks stored: {sum(counts.values())}[/bold green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    limit: int = typer.Option(5, "--limit", "-n", min=1, max=50, help="Maximum results"),
    threshold: Optional[float] = typer.Option(None, min=0.0, max=1.0, help="Minimum similarity"),
) -> None:
    """Search the knowledge base."""
    from omsagent.service import AgentService

    try:
        results = AgentService().search(query, match_count=limit, threshold=threshold)
    except Exception as e:
        console.print(f"[red]Search failed: {e}[/red]")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No relevant documents found.[/yellow]")
        return

    table = Table(title=f"Results for: {query}")
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Similarity", style="green", no_wrap=True)
    table.add_column("Source", no_wrap=True)
    table.add_column("Content")

    for rank, result in enumerate(results, start=1):
        preview = result.content if len(result.content) <= 120 else f"{result.content[:120]}..."
        table.add_row(str(rank), f"{result.similarity:.3f}", result.source, preview)

    console.print(table)


@app.command()
def stats() -> None:
    """Show chunk counts per knowledge base category."""
    from omsagent.service import AgentService

    try:
        data = AgentService().knowledge_stats()
    except Exception as e:
        console.print(f"[red]Stats failed: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Knowledge base ({data['total_documents']} chunks)")
    table.add_column("Category", style="cyan", no_wrap=True)
    table.add_column("Chunks", style="green")
    for category, count in sorted(data["categories"].items()):
        table.add_row(category, str(count))

    console.print(table)


@app.command("export-graph")
def export_graph(
    output: Path = typer.Option(Path("graph-data.json"), "--output", "-o", help="Output JSON file"),
    threshold: Optional[float] = typer.Option(
        None, min=0.0, max=1.0, help="Minimum similarity for source-to-source links"
    ),
) -> None:
    """Write knowledge graph nodes and links for the visualizer."""
    from omsagent.service import AgentService

    try:
        with console.status("[bold green]Building graph..."):
            data = AgentService().graph_data(similarity_threshold=threshold)
    except Exception as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(data.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")

    console.print(
        f"[green]Wrote {len(data.nodes)} nodes and {len(data.links)} links to {output}[/green]"
    )


@app.command()
def check(
    timeout: int = typer.Option(30, min=1, help="Timeout in seconds"),
) -> None:
    """Verify the LLM gateway answers a minimal completion."""
    from omsagent.resources import get_llm

    with console.status("[bold green]Checking LLM gateway..."):
        healthy, message = get_llm().health_check(timeout=timeout)

    if not healthy:
        console.print(f"[red]✗ {message}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ {message}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from omsagent import __version__

    console.print(f"OMS Agent v{__version__}")


if __name__ == "__main__":
    app()
