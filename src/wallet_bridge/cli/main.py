"""
wallet-bridge CLI — `wallet-bridge` command.

Commands:
  wallet-bridge uri new            Generate a manual pairing URI
  wallet-bridge uri check <uri>    Validate a pairing URI
  wallet-bridge uri links <uri>    Wallet deep links for a URI
  wallet-bridge connect <user-id>  Pair a wallet and wait for approval
  wallet-bridge config             Show effective settings
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install wallet-bridge[cli]")

from wallet_bridge.config import BridgeSettings

console = Console()


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
@click.pass_context
def main(ctx: click.Context, log_level):
    """wallet-bridge CLI — pair wallets and relay transactions for chat bots."""
    settings = BridgeSettings()
    _configure_logging(log_level or settings.log_level)
    ctx.obj = settings


# Register subcommands from separate modules
from wallet_bridge.cli.uri import uri
from wallet_bridge.cli.connect import connect_cmd, config_cmd

main.add_command(uri)
main.add_command(connect_cmd)
main.add_command(config_cmd)


if __name__ == "__main__":
    main()
