"""
semkit CLI

Command-line interface for parsing, chunking and snapshotting
TypeScript/JavaScript sources.

Usage::

    semkit parse src/app.ts                   # Print the symbol tree
    semkit chunk ./src                        # Chunk a file or directory
    semkit snapshot src/app.ts Server.start   # Minimal excerpt around targets
"""

import json
import logging
import time
from pathlib import Path

import click

from semkit.core.config import SemkitConfig
from semkit.exceptions import SemkitError


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def _configure_logging(config: SemkitConfig, verbose: bool) -> None:
    """Set up logging for the CLI session."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format=config.log_format)


# ---------------------------------------------------------------------------
# Top-level group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="semkit")
@click.pass_context
def cli(ctx: click.Context):
    """semkit: syntax-aware chunks and snapshots for TypeScript/JavaScript."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = SemkitConfig.from_env()


def _client(ctx: click.Context, verbose: bool):
    """Configure logging and build a client for the session config."""
    config = ctx.obj["config"]
    _configure_logging(config, verbose)

    # Lazy import so help text is instant even before the grammars load
    from semkit.client import Semkit  # noqa: E402

    try:
        return Semkit(config=config, validate_on_init=True)
    except SemkitError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# semkit parse
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Workspace root for relative paths (default: the path as given).")
@click.option("-f", "--format", "fmt", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def parse(ctx: click.Context, file: str, root: str | None, fmt: str, verbose: bool):
    """Print the symbol tree of FILE."""
    client = _client(ctx, verbose)
    try:
        parsed = client.parse(file, workspace_root=root)
    except SemkitError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if fmt == "json":
        click.echo(json.dumps(parsed.to_dict(), indent=2))
        return

    click.echo(f"{parsed.relative_path}  ({parsed.total_lines} lines)")
    if parsed.has_syntax_errors:
        click.echo("  ! parsed with syntax errors")
    for symbol in parsed.symbols:
        _echo_symbol(symbol, indent=1)


def _echo_symbol(symbol, indent: int) -> None:
    pad = "  " * indent
    lines = f"{symbol.start_line}-{symbol.end_line}"
    click.echo(f"{pad}{lines:>9}  {symbol.kind:<12} {symbol.signature}")
    for child in symbol.children:
        _echo_symbol(child, indent + 1)


# ---------------------------------------------------------------------------
# semkit chunk
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Workspace root for a single FILE (directories are their own root).")
@click.option("-f", "--format", "fmt", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
@click.option("--progress/--no-progress", default=False,
              help="Show a progress bar while chunking a directory.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def chunk(ctx: click.Context, path: str, root: str | None, fmt: str,
          progress: bool, verbose: bool):
    """Chunk a FILE or every supported file under a DIRECTORY."""
    client = _client(ctx, verbose)
    config = client.config
    t0 = time.perf_counter()

    if Path(path).is_dir():
        result = client.chunk_directory(path, show_progress=progress)
        chunks = result.chunks
        failures = result.failures
        stats = result.stats
    else:
        try:
            chunked = client.chunk(path, workspace_root=root)
        except SemkitError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1)
        chunks = chunked.chunks
        failures = {}
        stats = {"files_chunked": 1, "chunks_created": len(chunks)}

    elapsed = time.perf_counter() - t0

    if fmt == "json":
        payload = {
            "chunks": [c.to_dict() for c in chunks],
            "failures": failures,
            "stats": stats,
        }
        click.echo(json.dumps(payload, indent=2))
        return

    for c in chunks:
        flag = "  [oversized]" if c.is_oversized(config.token_budget, config.chars_per_token) else ""
        click.echo(f"{c.id}  {c.start_line:>5}-{c.end_line:<5} {c.node_kind:<12} {c.breadcrumb}{flag}")
    for failed, reason in failures.items():
        click.echo(f"skipped  {failed}: {reason}", err=True)

    click.echo("─" * 50)
    click.echo(f"  Files chunked  {stats.get('files_chunked', 0):>8,}")
    click.echo(f"  Chunks         {len(chunks):>8,}")
    click.echo(f"  Skipped        {len(failures):>8,}")
    click.echo(f"  Completed in {elapsed:.3f} seconds")


# ---------------------------------------------------------------------------
# semkit snapshot
# ---------------------------------------------------------------------------

@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.argument("targets", nargs=-1, required=True)
@click.option("--root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Workspace root for the header path (default: the path as given).")
@click.option("-f", "--format", "fmt", type=click.Choice(["text", "json"]),
              default="text", help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def snapshot(ctx: click.Context, file: str, targets: tuple, root: str | None,
             fmt: str, verbose: bool):
    """Render a minimal excerpt of FILE around TARGETS.

    Each target is a symbol query: ``Name``, ``Parent.Name``,
    ``file.ts::Parent.Name`` or ``Parent > Name``, optionally followed
    by ``, kind = <kind>``.
    """
    client = _client(ctx, verbose)
    try:
        index = client.index(file, workspace_root=root)
    except SemkitError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    chosen = []
    for target in targets:
        try:
            found = index.lookup(target)
        except SemkitError as exc:
            click.echo(f"Error: {exc}", err=True)
            raise SystemExit(1)
        if not found.matches:
            click.echo(f"Error: {found.hint()}", err=True)
            raise SystemExit(1)
        chosen.extend(m for m in found.matches if m not in chosen)

    try:
        result = client.snapshot(chosen)
    except SemkitError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if fmt == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        click.echo(result.snapshot)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
