"""CLI entry point — Typer app for docsync commands.

Usage:
    docsync run docsync.yaml
    docsync run --source "My Docs" -v
    docsync chunk README.md
    docsync chunk src/app.py --code
    docsync status
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

app = typer.Typer(
    name="docsync",
    help="Documentation ingestion — crawl, chunk, embed and sync into vector stores.",
    no_args_is_help=True,
)

console = Console()

_CONFIG_PATH = typer.Argument(help="Path to docsync.yaml (default: nearest docsync.yaml)")
_CHUNK_PATH = typer.Argument(help="Path to a file to chunk")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # Third-party clients are chatty at INFO
    for name in ("httpx", "httpcore", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


@app.command()
def run(
    config: Annotated[Path | None, _CONFIG_PATH] = None,
    source: str | None = typer.Option(
        None, "--source", "-s", help="Only process the source with this product name",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Process every configured source and print a summary."""
    from docsync.config import load_settings
    from docsync.embeddings.factory import provider_from_settings
    from docsync.errors import ConfigError
    from docsync.pipeline.ingest import IngestPipeline

    _setup_logging(verbose)

    try:
        settings = load_settings(config)
        emb = provider_from_settings(settings.embedding)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/] {exc}")
        raise typer.Exit(code=1) from exc

    if not settings.sources:
        console.print("[yellow]No sources configured.[/]")
        raise typer.Exit(code=1)

    pipeline = IngestPipeline(embedding_provider=emb, crawl_settings=settings.crawl)
    reports = pipeline.run(settings, only=source)

    table = Table(title="Sync Summary")
    table.add_column("Source", style="cyan")
    table.add_column("Docs", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("Embedded", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_column("Status")

    for r in reports:
        if r.error:
            status = f"[red]error: {r.error[:60]}[/]"
        elif r.cleanup_skipped:
            status = "[yellow]cleanup skipped[/]"
        else:
            status = "[green]ok[/]"
        table.add_row(
            r.source,
            str(r.documents),
            str(r.chunks.created),
            str(r.chunks.embedded),
            str(r.chunks.skipped_unchanged),
            str(r.chunks.failed),
            str(r.deleted),
            status,
        )

    console.print(table)

    broken = [link for r in reports for link in r.broken_links]
    if broken:
        console.print(f"\n[bold yellow]Broken links ({len(broken)}):[/]")
        for link in broken:
            console.print(f"  {link}")

    if any(not r.ok for r in reports):
        raise typer.Exit(code=1)


@app.command()
def chunk(
    path: Annotated[Path, _CHUNK_PATH],
    code: bool = typer.Option(False, "--code", "-c", help="Use the code chunker"),
    product: str = typer.Option("local", "--product", "-p", help="Product name for metadata"),
    version: str = typer.Option("latest", "--version", help="Version for metadata"),
) -> None:
    """Chunk a local file and show the resulting chunks (no embedding)."""
    from docsync.chunking.factory import get_chunker
    from docsync.chunking.schemas import SourceContext
    from docsync.documents.loader import SUPPORTED_EXTENSIONS, DocumentLoader

    if not path.is_file():
        console.print(f"[bold red]Not a file:[/] {path}")
        raise typer.Exit(code=1)

    if code or path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        text = path.read_text(encoding="utf-8")
    else:
        text = DocumentLoader().load_file(path).text

    context = SourceContext(
        product_name=product,
        version=version,
        url=f"file://{path}",
        file_path=path.as_posix() if code else None,
    )
    chunks = get_chunker("code" if code else "markdown").chunk(text, context)

    table = Table(title=f"{path.name}: {len(chunks)} chunks")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Section")
    table.add_column("Tokens", justify="right")
    table.add_column("Chunk ID", style="dim")

    for c in chunks:
        table.add_row(
            str(c.chunk_index),
            c.metadata.section[:60],
            str(c.token_count),
            c.chunk_id[:12],
        )

    console.print(table)


@app.command()
def status() -> None:
    """Show available components (chunkers, embedding providers, stores)."""
    from docsync.chunking.factory import available_chunkers
    from docsync.embeddings.factory import available_providers
    from docsync.vectorstore.factory import available_stores

    console.print("\n[bold green]docsync[/] v0.1.0\n")

    table = Table(title="Available Components")
    table.add_column("Layer", style="cyan")
    table.add_column("Available")

    table.add_row("Chunkers", ", ".join(available_chunkers()))
    table.add_row("Embedding Providers", ", ".join(available_providers()))
    table.add_row("Vector Stores", ", ".join(available_stores()))

    console.print(table)


if __name__ == "__main__":
    app()
