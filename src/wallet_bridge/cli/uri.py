"""CLI: wallet-bridge uri new|check|links"""

import json

import click
from rich.console import Console
from rich.table import Table

from wallet_bridge.uri import build_deep_links, generate_manual_uri, validate_uri

console = Console()


@click.group()
def uri():
    """Pairing URI helpers."""


@uri.command("new")
@click.option("--bridge", default=None, help="Bridge URL (defaults to WALLETCONNECT_BRIDGE)")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_obj
def uri_new(settings, bridge, json_output):
    """Generate a manual pairing URI."""
    pairing = generate_manual_uri(bridge or settings.walletconnect_bridge)
    if json_output:
        click.echo(json.dumps(pairing._asdict(), indent=2))
        return
    console.print(f"[bold]{pairing.uri}[/bold]")
    console.print(f"[dim]id {pairing.session_id}, bridge {pairing.bridge}[/dim]")


@uri.command("check")
@click.argument("pairing_uri")
def uri_check(pairing_uri):
    """Validate a pairing URI."""
    if validate_uri(pairing_uri):
        console.print("[green]PASS[/green]")
    else:
        console.print("[red]FAIL[/red]")
        raise SystemExit(1)


@uri.command("links")
@click.argument("pairing_uri")
@click.option("--json-output", "--json", is_flag=True)
def uri_links(pairing_uri, json_output):
    """Show wallet deep links for a pairing URI."""
    links = build_deep_links(pairing_uri) or {}
    if json_output:
        click.echo(json.dumps(links, indent=2))
        return
    table = Table(title="Wallet deep links")
    table.add_column("Wallet", style="bold")
    table.add_column("Link")
    for name, link in links.items():
        table.add_row(name, link)
    console.print(table)
