"""Command-line interface for textdomain."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from textdomain.catalog import Catalog
from textdomain.errors import TextDomainError
from textdomain.log import configure_logging
from textdomain.mo import compile_mo
from textdomain.po import dump_po
from textdomain.registry import DomainState, LocaleRegistry, load_catalog

app = typer.Typer(
    name="textdomain",
    help="Inspect, compile and query gettext PO/MO catalogs",
    add_completion=False,
)

console = Console()


def _fail(message: str) -> None:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


def _load(file: Path) -> Catalog:
    if not file.exists():
        _fail(f"File not found: {file}")
    try:
        return load_catalog(file)
    except TextDomainError as e:
        _fail(str(e))
        raise


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log catalog loading at debug level"),
    ] = False,
    log_json: Annotated[
        bool,
        typer.Option("--log-json", help="Emit logs as JSON lines"),
    ] = False,
) -> None:
    """Configure logging for every command."""
    configure_logging("DEBUG" if verbose else "WARNING", json_output=log_json)


@app.command(name="compile")
def compile_cmd(
    file: Annotated[Path, typer.Argument(help="PO file to compile")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output MO file (default: next to the PO file)"),
    ] = None,
    use_hash: Annotated[
        bool,
        typer.Option("--hash", help="Include a GNU hash table"),
    ] = False,
) -> None:
    """Compile a PO catalog into an MO file."""
    catalog = _load(file)
    output = output or file.with_suffix(".mo")
    try:
        data = compile_mo(catalog, use_hash=use_hash)
    except TextDomainError as e:
        _fail(str(e))
    output.write_bytes(data)
    written = sum(1 for e in catalog if e.is_translated and not e.is_fuzzy)
    typer.echo(f"Compiled {written} of {len(catalog)} entries to {output}")


@app.command(name="decompile")
def decompile_cmd(
    file: Annotated[Path, typer.Argument(help="MO file to decompile")],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output PO file (default: stdout)"),
    ] = None,
) -> None:
    """Write an MO (or PO) catalog back as PO text."""
    text = dump_po(_load(file))
    if output:
        output.write_text(text, encoding="utf-8")
        typer.echo(f"Catalog written to {output}")
    else:
        typer.echo(text)


@app.command(name="inspect")
def inspect_cmd(
    file: Annotated[Path, typer.Argument(help="PO or MO file")],
) -> None:
    """Show a catalog's header and entry statistics."""
    catalog = _load(file)

    console.print()
    console.print(f"[bold]{file}[/bold] ({catalog.format.upper()})")
    console.print("━" * 52)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Header", style="cyan")
    table.add_column("Value", style="white")
    for key, value in catalog.headers.items():
        table.add_row(key, value)
    console.print(table)

    entries = list(catalog)
    plural = sum(1 for e in entries if e.is_plural)
    fuzzy = sum(1 for e in entries if e.is_fuzzy)
    untranslated = sum(1 for e in entries if not e.is_translated)
    with_context = sum(1 for e in entries if e.context)

    console.print(f"Entries: {len(entries):,}  (plural: {plural:,}, with context: {with_context:,})")
    console.print(f"Plural rule: {catalog.plural_forms}")
    if fuzzy:
        console.print(f"[yellow]Fuzzy: {fuzzy:,}[/yellow]")
    if untranslated:
        console.print(f"[yellow]Untranslated: {untranslated:,}[/yellow]")
    console.print()


@app.command(name="lookup")
def lookup_cmd(
    library: Annotated[Path, typer.Argument(help="Locale library directory")],
    language: Annotated[str, typer.Argument(help="Language tag, e.g. fr_CA")],
    domain: Annotated[str, typer.Argument(help="Domain name")],
    msgid: Annotated[str, typer.Argument(help="Source string")],
    plural: Annotated[
        Optional[str],
        typer.Option("--plural", "-p", help="Source plural string"),
    ] = None,
    count: Annotated[
        int,
        typer.Option("--count", "-n", help="Count used to pick the plural form"),
    ] = 1,
    context: Annotated[
        Optional[str],
        typer.Option("--context", "-c", help="Message context (msgctxt)"),
    ] = None,
) -> None:
    """Translate one string the way an application would."""
    registry = LocaleRegistry(library, autoload=False)
    loaded = registry.add_domain(language, domain)
    if loaded.state != DomainState.LOADED:
        typer.secho(f"Warning: {loaded.error}", fg=typer.colors.YELLOW, err=True)

    if plural is not None:
        result = registry.get_plural_context(language, msgid, plural, count, context or "", domain)
    else:
        result = registry.get_context(language, msgid, context or "", domain)
    typer.echo(result)


@app.command(name="snapshot")
def snapshot_cmd(
    library: Annotated[Path, typer.Argument(help="Locale library directory")],
    output: Annotated[Path, typer.Option("--output", "-o", help="Snapshot file to write")],
    languages: Annotated[
        list[str],
        typer.Option("--language", "-l", help="Language to include (repeatable)"),
    ],
    domains: Annotated[
        list[str],
        typer.Option("--domain", "-d", help="Domain to include (repeatable)"),
    ],
) -> None:
    """Load catalogs and export them as a registry snapshot."""
    registry = LocaleRegistry(library, autoload=False)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Language", style="cyan")
    table.add_column("Domain", style="white")
    table.add_column("Entries", justify="right")
    table.add_column("Source")

    for language in languages:
        for domain in domains:
            loaded = registry.add_domain(language, domain)
            if loaded.catalog is not None:
                table.add_row(language, domain, f"{len(loaded.catalog):,}", str(loaded.path))
            else:
                table.add_row(language, domain, "-", f"[red]{loaded.state.value}[/red]")

    output.write_bytes(registry.export_snapshot())
    console.print(table)
    console.print(f"Snapshot written to {output}")


if __name__ == "__main__":
    app()
