"""Click-based CLI for talking to line-oriented appliances."""

import asyncio
import json
import logging
import sys
from typing import Any, Callable

import click

from lib.avtelnet.client import TelnetClient
from lib.avtelnet.config import load_config
from lib.avtelnet.exceptions import TelnetError
from lib.avtelnet.logging import TRACE, setup_logging


def _parse_options(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:
    options = {}
    for value in values:
        key, sep, item = value.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{value}'")
        options[key] = item
    return options


def common_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator for common CLI options.

    Parameters
    ----------
    func : Callable[..., Any]
        Function to decorate

    Returns
    -------
    Callable[..., Any]
        Decorated function
    """
    func = click.option(
        "--target",
        "-t",
        required=True,
        help="Device host, or a device name from the config file",
    )(func)
    func = click.option(
        "--port",
        type=int,
        help="TCP port (defaults to the configured port)",
    )(func)
    func = click.option(
        "--profile",
        help="Device profile name (trinnov, kaleidescape, custom)",
    )(func)
    func = click.option(
        "--option",
        "-o",
        "profile_options",
        multiple=True,
        callback=_parse_options,
        help="Profile option as KEY=VALUE (repeatable)",
    )(func)
    func = click.option(
        "--no-reconnect",
        is_flag=True,
        help="Do not reconnect automatically",
    )(func)
    func = click.option(
        "--config",
        "config_file",
        type=click.Path(dir_okay=False),
        help="YAML configuration file",
    )(func)
    func = click.option(
        "--json",
        "json_output",
        is_flag=True,
        help="Output in JSON format",
    )(func)
    func = click.option(
        "--verbose",
        "-v",
        count=True,
        help="Verbose output (-vv also logs every line sent and received)",
    )(func)
    func = click.option(
        "--quiet",
        "-q",
        is_flag=True,
        help="Quiet output (errors only)",
    )(func)
    return func


def setup_cli_logging(verbose: int, quiet: bool, json_output: bool, log_file: str | None = None) -> None:
    """Set up logging for CLI.

    Parameters
    ----------
    verbose : int
        Verbosity count
    quiet : bool
        Enable quiet logging
    json_output : bool
        Enable JSON output
    log_file : str | None, optional
        Additional log file, by default None
    """
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = TRACE
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    setup_logging(level=level, json_output=json_output, log_file=log_file)


def build_client(
    target: str,
    port: int | None,
    profile: str | None,
    profile_options: dict[str, str],
    no_reconnect: bool,
    config_file: str | None,
) -> TelnetClient:
    """Create a client from the config file and command line overrides.

    Parameters
    ----------
    target : str
        Device host or configured device name
    port : int | None
        Port override
    profile : str | None
        Profile override
    profile_options : dict[str, str]
        Profile options merged over the configured ones
    no_reconnect : bool
        Disable automatic reconnection
    config_file : str | None
        YAML configuration file

    Returns
    -------
    TelnetClient
        Unconnected client
    """
    config = load_config(config_file)
    device = config.get_device_config(target, port)

    update: dict[str, Any] = {}
    if profile:
        update["profile"] = profile
    if profile_options:
        update["profile_options"] = {**device.profile_options, **profile_options}
    if update:
        device = device.model_copy(update=update)

    options = config.client
    if no_reconnect:
        options = options.model_copy(update={"auto_reconnect": False})

    return TelnetClient.from_config(device, options)


def _emit(client: TelnetClient, line: str, json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps({"host": client.host, "port": client.port, "line": line}))
    else:
        click.echo(line)


def _fail(message: str, json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps({"error": message, "success": False}))
    else:
        click.echo(f"Error: {message}", err=True)
    sys.exit(1)


async def _monitor(client: TelnetClient, json_output: bool) -> None:
    client.on_message(lambda line: _emit(client, line, json_output))
    try:
        await client.connect()
        if not client.connected and not client.auto_reconnect:
            raise TelnetError("Unable to connect", address=client.address)

        await asyncio.Event().wait()
    finally:
        await client.dispose()


async def _send(client: TelnetClient, commands: tuple[str, ...], wait: float, json_output: bool) -> None:
    client.on_message(lambda line: _emit(client, line, json_output))
    try:
        await client.connect()
        if not client.connected:
            raise TelnetError("Unable to connect", address=client.address)

        for command in commands:
            await client.send(command)

        await asyncio.sleep(wait)
    finally:
        await client.dispose()


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """Line-oriented appliance client CLI."""
    pass


@cli.command()
@common_options
def monitor(
    target: str,
    port: int | None,
    profile: str | None,
    profile_options: dict[str, str],
    no_reconnect: bool,
    config_file: str | None,
    json_output: bool,
    verbose: int,
    quiet: bool,
) -> None:
    """Print every line received from a device until interrupted."""
    setup_cli_logging(verbose, quiet, json_output)

    try:
        client = build_client(target, port, profile, profile_options, no_reconnect, config_file)
        asyncio.run(_monitor(client, json_output))
    except KeyboardInterrupt:
        click.echo("\nShutting down...", err=True)
    except (TelnetError, ValueError) as e:
        _fail(str(e), json_output)


@cli.command()
@common_options
@click.option(
    "--wait",
    "-w",
    default=2.0,
    type=float,
    show_default=True,
    help="Seconds to keep printing received lines after sending",
)
@click.argument("commands", nargs=-1, required=True)
def send(
    target: str,
    port: int | None,
    profile: str | None,
    profile_options: dict[str, str],
    no_reconnect: bool,
    config_file: str | None,
    json_output: bool,
    verbose: int,
    quiet: bool,
    wait: float,
    commands: tuple[str, ...],
) -> None:
    """Send COMMANDS to a device, one line each, and print the replies."""
    setup_cli_logging(verbose, quiet, json_output)

    try:
        client = build_client(target, port, profile, profile_options, no_reconnect, config_file)
        asyncio.run(_send(client, commands, wait, json_output))
    except KeyboardInterrupt:
        click.echo("\nShutting down...", err=True)
    except (TelnetError, ValueError) as e:
        _fail(str(e), json_output)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
