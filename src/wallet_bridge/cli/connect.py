"""CLI: wallet-bridge connect, wallet-bridge config"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from wallet_bridge.client import WalletBridge
from wallet_bridge.errors import ConnectionTimeout
from wallet_bridge.models.events import BridgeEvent

console = Console()


def _run(coro):
    from wallet_bridge.cli.main import _run
    return _run(coro)


@click.command("connect")
@click.argument("user_id")
@click.option("--timeout", default=None, type=float, help="Seconds to wait for approval")
@click.option("--json-output", "--json", is_flag=True)
@click.pass_obj
def connect_cmd(settings, user_id: str, timeout: Optional[float], json_output: bool):
    """Pair a wallet for USER_ID and wait for approval."""

    async def _connect():
        bridge = WalletBridge.from_settings(settings)

        def on_event(event, data):
            if event == BridgeEvent.WALLET_CONNECTED and not json_output:
                console.print(f"[green]Wallet connected:[/green] {data.address} (chain {data.chain_id})")
            elif event == BridgeEvent.PAIRING_FAILED and not json_output:
                console.print(f"[red]Pairing failed:[/red] {data.message}")

        bridge.on_event(on_event)
        await bridge.start()
        try:
            pairing = await bridge.create_session(user_id)
            if json_output:
                click.echo(json.dumps({"session_id": pairing.session_id, "uri": pairing.uri}))
            else:
                mode = "manual" if pairing.handle.is_manual else "protocol"
                console.print(f"[dim]Session: {pairing.session_id} ({mode})[/dim]")
                console.print(f"[bold]{pairing.uri}[/bold]")
            if pairing.handle.is_manual:
                if not json_output:
                    console.print("[yellow]Manual pairing: paste the URI into your wallet app.[/yellow]")
                return
            with console.status("Waiting for wallet approval..."):
                status = await bridge.wait_for_connection(user_id, timeout=timeout)
            if json_output:
                click.echo(status.model_dump_json(by_alias=True))
            elif status.warning:
                console.print(f"[yellow]Warning:[/yellow] {status.warning}")
        except ConnectionTimeout as e:
            console.print(f"[red]{e}[/red]")
            raise SystemExit(1)
        finally:
            await bridge.shutdown()

    _run(_connect())


@click.command("config")
@click.pass_obj
def config_cmd(settings):
    """Show effective settings."""
    table = Table(title="wallet-bridge settings")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in settings.model_dump().items():
        if name == "walletconnect_project_id" and value:
            value = f"{value[:6]}..."
        table.add_row(name, str(value))
    console.print(table)
