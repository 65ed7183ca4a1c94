"""CLI commands for inspecting synced documents."""

from __future__ import annotations

import asyncio
import json as _json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from docs_sync.core.config import settings
from docs_sync.pipelines.loader.links import rewrite_links
from docs_sync.pipelines.store import create_store


@click.group()
def docs():
    """Inspect documents held in the content store."""
    pass


@docs.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def docs_list(as_json: bool):
    """List stored documents."""

    async def _run():
        store = create_store(settings)
        try:
            return await store.list()
        finally:
            await store.close()

    records = asyncio.run(_run())

    if as_json:
        click.echo(
            _json.dumps(
                [
                    {"url": r.url, "name": r.name, "path": r.path, "size": r.size, "sha": r.sha}
                    for r in records
                ],
                indent=2,
            )
        )
        return

    if not records:
        click.echo("No documents stored. Run `docs-sync sync run` first.")
        return

    console = Console()
    table = Table(title=f"Collection: {settings.collection}")
    table.add_column("Name", style="cyan")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("SHA", style="dim")
    for r in records:
        table.add_row(r.name, r.path, str(r.size), r.sha[:10])
    console.print(table)


@docs.command("show")
@click.argument("key")
@click.option("--json", "as_json", is_flag=True, help="Output the full record as JSON")
def docs_show(key: str, as_json: bool):
    """Show a stored document by its canonical URL."""

    async def _run():
        store = create_store(settings)
        try:
            return await store.get(key)
        finally:
            await store.close()

    record = asyncio.run(_run())
    if record is None:
        click.echo(f"❌ No document stored under {key}")
        sys.exit(1)

    if as_json:
        click.echo(_json.dumps(record.to_store(), indent=2, ensure_ascii=False))
    else:
        click.echo(record.content)


@docs.command("rewrite")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--route-prefix", default=None, help="Route prefix for rewritten links")
@click.option("--normalize", is_flag=True, help="Resolve ../ segments of any depth")
def docs_rewrite(file: Path, route_prefix: str | None, normalize: bool):
    """Rewrite relative links in a local Markdown file and print the result."""
    text = file.read_text(encoding="utf-8")
    click.echo(
        rewrite_links(
            text,
            route_prefix or settings.route_prefix,
            normalize or settings.normalize_paths,
        ),
        nl=False,
    )
