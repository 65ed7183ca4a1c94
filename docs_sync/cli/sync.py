"""CLI commands for running the docs sync pipeline."""

from __future__ import annotations

import asyncio
import json as _json
import sys

import click
from rich.console import Console
from rich.table import Table

from docs_sync.core.config import settings
from docs_sync.core.exceptions import ListingError, SyncAbortedError
from docs_sync.pipelines.orchestrator import SyncOrchestrator
from docs_sync.pipelines.store import InMemoryContentStore, create_store


@click.group()
def sync():
    """Synchronize remote Markdown docs into the content store."""
    pass


def _effective_settings(**overrides):
    return settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})


@sync.command("run")
@click.option("--repo", help="GitHub repository (owner/name)")
@click.option("--path", help="Directory inside the repository")
@click.option(
    "--store",
    "store_backend",
    type=click.Choice(["json", "redis", "memory"]),
    help="Content store backend",
)
@click.option("--store-path", help="Base path for the JSON store")
@click.option("--fail-fast", is_flag=True, help="Abort on the first entry failure")
@click.option("--no-prune", is_flag=True, help="Keep records that disappeared upstream")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def run(repo, path, store_backend, store_path, fail_fast, no_prune, as_json):
    """Run one sync pass."""
    run_settings = _effective_settings(
        repo=repo,
        path=path,
        store_backend=store_backend,
        store_path=store_path,
        fail_fast=True if fail_fast else None,
        prune_stale=False if no_prune else None,
    )

    async def _run():
        store = create_store(run_settings)
        try:
            return await SyncOrchestrator(store, run_settings).run()
        finally:
            await store.close()

    if not as_json:
        click.echo(f"🔄 Syncing {run_settings.repo}/{run_settings.path}...")

    try:
        result = asyncio.run(_run())
    except ListingError as e:
        click.echo(f"❌ Discovery failed: {e}")
        sys.exit(1)
    except SyncAbortedError as e:
        click.echo(f"❌ Sync aborted: {e.cause}")
        click.echo(f"   Records stored before abort: {len(e.stored)}")
        sys.exit(1)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        console = Console()
        table = Table(title=f"Sync {result.repo}/{result.path}")
        table.add_column("Discovered", justify="right")
        table.add_column("Stored", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Pruned", justify="right")
        table.add_row(
            str(result.discovered),
            str(len(result.stored)),
            str(len(result.skipped)),
            str(len(result.failures)),
            str(len(result.pruned)),
        )
        console.print(table)

        for failure in result.failures:
            click.echo(f"   ❌ {failure.metadata_url}: {failure.error_type}: {failure.message}")

    if not result.success:
        sys.exit(1)


@sync.command("discover")
@click.option("--repo", help="GitHub repository (owner/name)")
@click.option("--path", help="Directory inside the repository")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
def discover(repo, path, as_json):
    """List the entries a sync would fetch, without fetching them."""
    run_settings = _effective_settings(repo=repo, path=path)

    async def _discover():
        orchestrator = SyncOrchestrator(InMemoryContentStore(run_settings.collection), run_settings)
        return await orchestrator.discover()

    try:
        refs = asyncio.run(_discover())
    except ListingError as e:
        click.echo(f"❌ Discovery failed: {e}")
        sys.exit(1)

    if as_json:
        click.echo(_json.dumps([ref.model_dump() for ref in refs], indent=2))
        return

    click.echo(f"📄 {len(refs)} entries in {run_settings.repo}/{run_settings.path}")
    for ref in refs:
        click.echo(f"   • {ref.content_url}")
