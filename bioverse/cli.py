"""
BIOVERSE CLI - resolve structures, inspect UniProt entries, maintain the cache
"""
import asyncio
from contextlib import asynccontextmanager
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.table import Table

from bioverse.api.dependencies import build_services
from bioverse.exceptions import BioverseError, MetadataNotFoundError
from bioverse.settings import BioverseSettings, get_settings, reload_settings
from bioverse.structures.models import ResolutionFailure, ResolutionOutcome
from bioverse.utils import get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


@asynccontextmanager
async def _open_services(obj: dict):
    """Build services around a short-lived HTTP client for one command."""
    settings: BioverseSettings = obj["settings"]
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.http_timeout,
        transport=obj.get("transport"),
    ) as client:
        yield build_services(settings, client, obj.get("store"))


def _trail_table(outcome: ResolutionOutcome) -> Table:
    table = Table(title="Providers tried")
    table.add_column("Provider", style="cyan")
    table.add_column("Sub-identifier")
    table.add_column("URL", overflow="fold")
    table.add_column("Failure", style="red")
    table.add_column("Attempts", justify="right")
    for failure in outcome.trail:
        for attempt in failure.candidates:
            code = f" {attempt.status_code}" if attempt.status_code is not None else ""
            table.add_row(
                failure.provider,
                failure.sub_identifier,
                attempt.url,
                f"{attempt.kind}{code}",
                str(attempt.attempts),
            )
    return table


# ═══════════════════════════════════════════════════════════════════
# MAIN CLI GROUP
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version='0.1.0')
@click.option('--config', 'config_path', type=click.Path(), default=None, help='YAML settings file')
@click.pass_context
def main(ctx, config_path):
    """
    BIOVERSE - protein structure resolution

    Finds a 3-D structure for a UniProt accession, AlphaFold model id or
    PDB id across AlphaFold DB, RCSB PDB and PDBe, with a local cache.
    """
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = reload_settings(config_path) if config_path else get_settings()
    settings = ctx.obj["settings"]
    setup_logging(settings.log_level, settings.log_file)


# ═══════════════════════════════════════════════════════════════════
# STRUCTURE COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.argument('identifier')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the PDB file here')
@click.pass_obj
def resolve(obj, identifier, output):
    """Resolve IDENTIFIER to a structure file"""
    console.print(f"\n[bold blue]Resolving:[/bold blue] {identifier}")

    async def _run():
        async with _open_services(obj) as services:
            return await services.structures.resolve(identifier)

    try:
        with console.status("[bold green]Querying structure providers..."):
            outcome = asyncio.run(_run())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint='IDENTIFIER')

    if isinstance(outcome, ResolutionFailure):
        if outcome.trail:
            console.print(_trail_table(outcome))
        console.print(f"\n[red]✗ No structure found for '{outcome.identifier}'[/red]")
        raise SystemExit(1)

    record = outcome.record
    table = Table(title="Structure")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta", overflow="fold")
    table.add_row("Identifier", record.id)
    table.add_row("Provider", record.source_provider)
    table.add_row("Source URL", record.source_url)
    table.add_row("Fetched", record.fetched_at.isoformat())
    table.add_row("Expires", record.expires_at.isoformat())
    table.add_row("Checksum", record.checksum[:16])
    table.add_row("Cache", "hit" if outcome.from_cache else "miss")
    if "mean_plddt" in record.metadata:
        table.add_row("Mean pLDDT", str(record.metadata["mean_plddt"]))
    console.print(table)

    if outcome.trail:
        console.print(_trail_table(outcome))

    if output:
        Path(output).write_text(record.raw_payload, encoding="utf-8")
        console.print(f"[green]✓ Saved to {output}[/green]")


# ═══════════════════════════════════════════════════════════════════
# METADATA COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.argument('accession')
@click.pass_obj
def protein(obj, accession):
    """Show the UniProt summary for ACCESSION"""

    async def _run():
        async with _open_services(obj) as services:
            return await services.uniprot.get_protein(accession)

    try:
        summary = asyncio.run(_run())
    except MetadataNotFoundError as e:
        console.print(f"\n[red]✗ {e}[/red]")
        raise SystemExit(1)
    except BioverseError as e:
        console.print(f"\n[red]✗ Error: {e}[/red]")
        raise SystemExit(2)

    table = Table(title=f"UniProt {summary['accession']}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta", overflow="fold")
    table.add_row("Entry name", summary["id"])
    table.add_row("Protein", summary["protein_name"])
    table.add_row("Organism", summary["organism"])
    table.add_row("Length", str(summary["length"]))
    table.add_row("Features", str(len(summary["features"])))
    console.print(table)


# ═══════════════════════════════════════════════════════════════════
# CACHE COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.pass_obj
def sweep(obj):
    """Delete expired cache entries"""

    async def _run():
        async with _open_services(obj) as services:
            removed = await services.structures.sweep()
            return removed, await services.store.count()

    try:
        removed, remaining = asyncio.run(_run())
    except BioverseError as e:
        console.print(f"\n[red]✗ Error: {e}[/red]")
        raise SystemExit(2)

    console.print(f"[green]✓ Removed {removed} expired entries[/green] ({remaining} remaining)")


if __name__ == '__main__':
    main()
