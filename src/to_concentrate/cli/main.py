"""Client CLI controlling the To Concentrate daemon."""

import shutil
import subprocess
import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from to_concentrate import __version__
from to_concentrate.core.config import ConfigManager, default_config_path
from to_concentrate.core.engine import TimerSnapshot
from to_concentrate.daemon.daemon import DAEMON_NAME
from to_concentrate.daemon.ipc import AlreadyRunningError, IPCClient, IPCError
from to_concentrate.daemon.platform import get_ipc_socket_path
from to_concentrate.daemon.protocol import CommandRequest

console = Console()
error_console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def resolve_socket_path(config_path: Optional[str], socket_path: Optional[str]) -> Path:
    """Find the daemon's socket from the flag, the config file or the default.

    The client never generates a config file; a missing one means defaults.
    """
    if socket_path:
        return Path(socket_path).expanduser().absolute()

    path = Path(config_path) if config_path else default_config_path()
    if path.exists():
        configured = ConfigManager(path, create=False).get("runtime.socket")
        if configured:
            return Path(configured).expanduser().absolute()

    return get_ipc_socket_path()


def format_seconds(seconds: float) -> str:
    """Format a duration as whole seconds."""
    return f"{int(seconds)}s"


def fail(message: str) -> None:
    """Print an error and exit with a nonzero status."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def send(ctx: click.Context, command: CommandRequest) -> dict:
    """Send one request to the daemon, exiting on failure."""
    try:
        client = IPCClient(resolve_socket_path(ctx.obj["config"], ctx.obj["socket"]))
        return client.call(command)  # type: ignore[no-any-return]
    except (IPCError, ValueError) as e:
        fail(str(e))
        return {}


@click.group()
@click.version_option(version=__version__)
@click.option("-c", "--config", help="Path to a custom configuration file", type=click.Path())
@click.option("-s", "--socket", help="Path to the daemon's control socket", type=click.Path())
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], socket: Optional[str]) -> None:
    """To Concentrate - a preparation, concentration and relaxation timer.

    Commands talk to a background daemon started with `init`.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["socket"] = socket


@cli.command()
@click.option("-e", "--executable", help="Path to the daemon executable", type=click.Path())
@click.option(
    "-v",
    "--verbosity",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Daemon logging level",
)
@click.option("--timeout", default=5.0, show_default=True, help="Seconds to wait for the daemon")
@click.pass_context
def init(ctx: click.Context, executable: Optional[str], verbosity: str, timeout: float) -> None:
    """Launch and initialize a daemon process."""
    try:
        socket_path = resolve_socket_path(ctx.obj["config"], ctx.obj["socket"])
    except ValueError as e:
        fail(str(e))
        return

    client = IPCClient(socket_path, timeout=1.0)
    if client.is_daemon_running():
        fail(str(AlreadyRunningError(f"Daemon is already running on {socket_path}")))

    command = [executable or shutil.which(DAEMON_NAME) or DAEMON_NAME, "--daemonize"]
    command += ["--verbosity", verbosity.upper()]
    if ctx.obj["config"]:
        command += ["--config", str(Path(ctx.obj["config"]).expanduser().absolute())]
    command += ["--socket", str(socket_path)]

    try:
        result = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        fail(f"Could not spawn daemon process: {e}")
        return

    if result.returncode != 0:
        detail = result.stderr.strip() or f"exit status {result.returncode}"
        fail(f"Daemon exited abnormally: {detail}")

    deadline = time.monotonic() + timeout
    while not client.is_daemon_running():
        if time.monotonic() >= deadline:
            fail(f"Daemon did not answer on {socket_path}")
        time.sleep(0.1)

    console.print(f"[green]✓[/green] Daemon started on {socket_path}")


@cli.command()
@click.pass_context
def pause(ctx: click.Context) -> None:
    """Pause the timer."""
    send(ctx, CommandRequest.PAUSE)


@cli.command()
@click.pass_context
def resume(ctx: click.Context) -> None:
    """Resume the timer."""
    send(ctx, CommandRequest.RESUME)


@cli.command()
@click.pass_context
def skip(ctx: click.Context) -> None:
    """Skip the current stage."""
    send(ctx, CommandRequest.SKIP)


@cli.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop the daemon."""
    send(ctx, CommandRequest.STOP)


@cli.command()
@click.option("-c", "--current", is_flag=True, help="Show the timer's current status")
@click.option("-s", "--stage", is_flag=True, help="Show the current stage's name")
@click.option("-t", "--total", is_flag=True, help="Show the total duration of the current stage")
@click.option("-r", "--remaining", is_flag=True, help="Show the remaining duration")
@click.option("-p", "--past", is_flag=True, help="Show the past duration")
@click.pass_context
def query(
    ctx: click.Context, current: bool, stage: bool, total: bool, remaining: bool, past: bool
) -> None:
    """Query the timer's status. Show all information if no flag is specified."""
    result = send(ctx, CommandRequest.QUERY)
    try:
        snapshot = TimerSnapshot.from_dict(result)
    except ValueError as e:
        fail(str(e))
        return

    show_all = not (current or stage or total or remaining or past)
    rows = []
    if show_all or current:
        rows.append(("Current", snapshot.status.value.capitalize()))
    if show_all or stage:
        rows.append(("Stage", snapshot.stage.title))
    if show_all or total:
        rows.append(("Total", format_seconds(snapshot.total_seconds)))
    if show_all or remaining:
        rows.append(("Remaining", format_seconds(snapshot.remaining_seconds)))
    if show_all or past:
        rows.append(("Past", format_seconds(snapshot.past_seconds)))

    width = max(len(key) for key, _ in rows)
    for key, value in rows:
        console.print(f"{key.ljust(width)} = {value}", highlight=False)


if __name__ == "__main__":
    cli(obj={})
