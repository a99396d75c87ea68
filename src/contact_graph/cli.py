#!/usr/bin/env python3
"""
contact-graph CLI - keep contact relationships consistent
"""

from __future__ import annotations

import asyncio
import logging

import click
from rich.console import Console
from rich.table import Table

from contact_graph.relationships import RelationshipSync, SyncReport
from contact_graph.settings import settings
from contact_graph.vault import VaultStore

console = Console()


def _configure_logging() -> None:
    level = (settings.log_level or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _open(vault: str | None) -> RelationshipSync:
    root = vault or settings.vault_path
    if not root:
        raise click.UsageError("No vault given. Use --vault or set CONTACT_GRAPH_VAULT_PATH.")
    return RelationshipSync(VaultStore(root))


def _resolve(engine: RelationshipSync, contact: str) -> str:
    ref = engine.store.lookup_by_id(contact) or engine.store.lookup_by_display_name(contact)
    if ref is None:
        raise click.ClickException(f"No contact with id or name '{contact}'")
    return ref.id


def _print_report(report: SyncReport) -> None:
    if report.skipped:
        console.print(f"[yellow]{report.entity_id} is already being synced; skipped[/yellow]")
        return

    table = Table(title=f"{report.mode} {report.entity_id}")
    table.add_column("Added", justify="right")
    table.add_column("Removed", justify="right")
    table.add_column("Upgraded", justify="right")
    table.add_column("Written")
    table.add_row(str(report.added), str(report.removed), str(report.upgraded), ", ".join(report.written) or "-")
    console.print(table)

    for err in report.errors:
        console.print(f"[red]{err}[/red]")


@click.group()
@click.option("--vault", default=None, help="Directory of contact documents")
@click.pass_context
def cli(ctx, vault):
    """Contact Graph - relationship consistency for contact documents"""
    _configure_logging()
    ctx.obj = {"vault": vault}


@cli.command()
@click.argument("contact")
@click.pass_context
def sync(ctx, contact):
    """Apply an edited relationship section to all related contacts"""
    engine = _open(ctx.obj["vault"])
    report = asyncio.run(engine.sync(_resolve(engine, contact)))
    _print_report(report)


@cli.command()
@click.argument("contact")
@click.pass_context
def view(ctx, contact):
    """Re-render a contact's relationship section from its fields"""
    engine = _open(ctx.obj["vault"])
    report = asyncio.run(engine.view_sync(_resolve(engine, contact)))
    _print_report(report)


@cli.command("full-sync")
@click.argument("contact")
@click.pass_context
def full_sync(ctx, contact):
    """Resolve pending names, then sync a contact"""
    engine = _open(ctx.obj["vault"])
    report = asyncio.run(engine.full_sync(_resolve(engine, contact)))
    _print_report(report)


@cli.command()
@click.pass_context
def validate(ctx):
    """Report relationship consistency problems"""
    engine = _open(ctx.obj["vault"])
    asyncio.run(engine.load())
    issues = engine.graph.validate()
    if not issues:
        console.print("[green]No relationship issues found[/green]")
        return

    table = Table(title=f"{len(issues)} relationship issues")
    table.add_column("Issue", style="red")
    table.add_column("Details")
    for issue in issues:
        table.add_row(issue.code, issue.message)
    console.print(table)
    ctx.exit(1)


@cli.command()
@click.pass_context
def stats(ctx):
    """Show relationship graph statistics"""
    engine = _open(ctx.obj["vault"])
    s = asyncio.run(engine.load())

    table = Table(title="Relationship graph")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Contacts", str(len(engine.store.list_entities())))
    table.add_row("Nodes", str(s.nodes))
    table.add_row("Edges", str(s.edges))
    table.add_row("Phantoms", str(s.phantoms))
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
