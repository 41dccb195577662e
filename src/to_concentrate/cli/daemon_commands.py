"""Entry point running the To Concentrate daemon."""

import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from to_concentrate import __version__
from to_concentrate.core.config import ConfigManager
from to_concentrate.daemon.daemon import ConcentrateDaemon, DaemonError
from to_concentrate.daemon.ipc import IPCError

console = Console(stderr=True)


@click.command()
@click.version_option(version=__version__)
@click.option("-c", "--config", help="Path to a custom configuration file", type=click.Path())
@click.option(
    "-s", "--socket", help="Path where the daemon creates the Unix socket", type=click.Path()
)
@click.option("-d", "--daemonize", is_flag=True, help="Detach and run in the background")
@click.option(
    "-v",
    "--verbosity",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: advanced.log_level from config)",
)
def daemon(
    config: Optional[str], socket: Optional[str], daemonize: bool, verbosity: Optional[str]
) -> None:
    """Run the To Concentrate daemon."""
    try:
        config_manager = ConfigManager(Path(config).expanduser().absolute() if config else None)
        daemon_instance = ConcentrateDaemon(
            config=config_manager,
            socket_path=Path(socket).expanduser().absolute() if socket else None,
        )
        daemon_instance.start(foreground=not daemonize, log_level=verbosity)
    except KeyboardInterrupt:
        console.print("\n[yellow]Daemon stopped by user[/yellow]")
    except (IPCError, DaemonError, ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    daemon()
