"""CLI for wikilinker.

Commands:
    link <file>      - Link entity mentions in a markdown file
    encode <name>... - Show phonetic signatures
    pool <type>      - Show the candidate pool for an entity type
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from wikilinker.config import load_entity_types, settings
from wikilinker.engine import AutoLinkEngine, PendingReview, ReviewOutcome
from wikilinker.errors import ReviewCancelledError, WikilinkerError
from wikilinker.inference.services import LLMSemanticServices
from wikilinker.linking.rewriter import LinkRewriter
from wikilinker.models import EntityTypeConfig, SelectionConfidence
from wikilinker.resolution.candidate_pool import CandidatePoolBuilder
from wikilinker.resolution.phonetic import encode as encode_name
from wikilinker.store.vault import VaultStore

app = typer.Typer(
    name="wikilinker",
    help="wikilinker: resolve entity mentions in notes to vault records and link them",
    no_args_is_help=True,
)
console = Console(stderr=True)

CONFIDENCE_STYLES = {
    SelectionConfidence.UNMATCHED: "red",
    SelectionConfidence.UNCERTAIN: "yellow",
    SelectionConfidence.LIKELY: "cyan",
    SelectionConfidence.CERTAIN: "green",
}


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=verbose)],
    )


def _load_types(config: Path) -> list[EntityTypeConfig]:
    try:
        return load_entity_types(config)
    except WikilinkerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None


def _selection_table(review: PendingReview) -> Table:
    table = Table(title="Selections")
    table.add_column("Entity", style="cyan")
    table.add_column("Type")
    table.add_column("Mentions")
    table.add_column("Confidence")
    table.add_column("Target")

    for selection in review.selections:
        style = CONFIDENCE_STYLES[selection.confidence]
        table.add_row(
            escape(selection.entity.canonical_name),
            selection.entity.type,
            escape(", ".join(selection.entity.display_names)),
            f"[{style}]{selection.confidence.value}[/{style}]",
            escape(selection.target_name or "-"),
        )
    return table


@app.command()
def link(
    file: Annotated[Path, typer.Argument(help="Markdown file to link")],
    config: Annotated[
        Path, typer.Option("--config", "-c", help="Pipeline YAML with entity_types")
    ],
    vault: Annotated[
        Path | None, typer.Option("--vault", help="Vault root (default: VAULT_PATH)")
    ] = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write linked text here instead of stdout")
    ] = None,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Show the result without writing anything")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Show per-entity decisions")
    ] = False,
):
    """Tag, resolve and link entity mentions in FILE.

    Selections are accepted as the pipeline made them. Learned misspellings
    are written back to the vault unless --dry-run is given.
    """
    configure_logging(verbose)
    if not file.is_file():
        console.print(f"[red]Error:[/red] File does not exist: {file}")
        raise typer.Exit(1)

    entity_types = _load_types(config)
    text = file.read_text(encoding="utf-8")
    store = VaultStore(vault or settings.vault_path, last_modified_field=settings.last_modified_field)
    engine = AutoLinkEngine(store, LLMSemanticServices())
    preview: list[str] = []

    async def reviewer(review: PendingReview) -> ReviewOutcome:
        console.print(_selection_table(review))
        if dry_run:
            preview.append(LinkRewriter(review.selections).rewrite(review.tagged_text))
            return ReviewOutcome.cancel()
        return ReviewOutcome.accept(review.selections)

    try:
        result = asyncio.run(engine.run(text, entity_types, reviewer))
        linked = result.text
        for path, variants in result.misspellings_written.items():
            console.print(f"[green]Learned[/green] {escape(', '.join(variants))} → {escape(path)}")
    except ReviewCancelledError:
        linked = preview[0] if preview else text
        console.print("[yellow]Dry run: nothing written back to the vault.[/yellow]")
    except WikilinkerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    if output is not None and not dry_run:
        output.write_text(linked, encoding="utf-8")
        console.print(f"Wrote {output}")
    else:
        typer.echo(linked, nl=False)


@app.command()
def encode(
    names: Annotated[list[str], typer.Argument(help="Names to encode")],
):
    """Show the phonetic signature of each NAME."""
    table = Table(title="Phonetic signatures")
    table.add_column("Name", style="cyan")
    table.add_column("Soundex")
    table.add_column("Metaphone")

    for name in names:
        signature = encode_name(name)
        table.add_row(escape(name), signature.soundex, ", ".join(signature.metaphones))

    Console().print(table)


@app.command()
def pool(
    entity_type: Annotated[str, typer.Argument(help="Entity type name")],
    config: Annotated[
        Path, typer.Option("--config", "-c", help="Pipeline YAML with entity_types")
    ],
    vault: Annotated[
        Path | None, typer.Option("--vault", help="Vault root (default: VAULT_PATH)")
    ] = None,
):
    """Show the candidate pool size and strategy for ENTITY_TYPE."""
    configure_logging(verbose=False)
    entity_types = {et.type: et for et in _load_types(config)}
    type_config = entity_types.get(entity_type)
    if type_config is None:
        known = ", ".join(entity_types)
        console.print(f"[red]Error:[/red] Unknown entity type {entity_type!r} (known: {known})")
        raise typer.Exit(1)

    store = VaultStore(vault or settings.vault_path, last_modified_field=settings.last_modified_field)
    built = asyncio.run(CandidatePoolBuilder(store).build(type_config))

    out = Console()
    out.print(f"[bold]{escape(entity_type)}[/bold]: {built.size} records ({built.strategy.value})")
    for record in built.records[:20]:
        names = ", ".join(record.names)
        out.print(f"  {escape(record.path)} [dim]{escape(names)}[/dim]")
    if built.size > 20:
        out.print(f"  [dim]... {built.size - 20} more[/dim]")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
