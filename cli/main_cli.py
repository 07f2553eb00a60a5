"""
Main CLI for the RCON wrapper
"""

import asyncio
import sys
from typing import Sequence

import click
from rich.console import Console
from rich.markup import escape

from utils.config import LOG_LEVELS, ConfigError, WrapperConfig, build_config
from utils.logging import setup_logging
from wrapper.context import FATAL_EXIT_CODE
from wrapper.supervisor import MISSING_COMMAND_MESSAGE, GameServerSupervisor

__version__ = "0.1.0"


# Everything after the first word of the startup command belongs to the game server
@click.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.version_option(version=__version__)
@click.option('--config', '-c', 'config_file', default=None, help='JSON configuration file')
@click.option('--log-file', default=None, help='RCON message log, truncated on startup (default: latest.log)')
@click.option('--log-level', default=None, type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help='Supervisor diagnostics level')
@click.option('--verbose', '-v', is_flag=True, help='Shortcut for --log-level DEBUG')
@click.argument('startup_command', nargs=-1, type=click.UNPROCESSED)
def main_cli(config_file, log_file, log_level, verbose, startup_command):
    """Run and supervise a game server: STARTUP_COMMAND is its full command line."""

    error_console = Console(stderr=True)

    if not startup_command:
        error_console.print(f"[red]{escape(MISSING_COMMAND_MESSAGE)}[/red]")
        sys.exit(FATAL_EXIT_CODE)

    overrides = {
        'log_file': log_file,
        'log_level': 'DEBUG' if verbose else log_level,
    }
    try:
        config = build_config(config_file, overrides=overrides)
    except ConfigError as e:
        error_console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(FATAL_EXIT_CODE)

    setup_logging(config.log_level)

    try:
        exit_code = asyncio.run(_run_supervisor(startup_command, config))
    except OSError as e:
        error_console.print(f"[red]❌ Could not start the game server: {escape(str(e))}[/red]")
        exit_code = FATAL_EXIT_CODE

    sys.exit(exit_code)


async def _run_supervisor(startup_command: Sequence[str], config: WrapperConfig) -> int:
    """Run the supervisor on the current event loop"""
    supervisor = GameServerSupervisor(startup_command, config, console=Console(soft_wrap=True))
    return await supervisor.run()


def main():
    """Entry point for the rcon-wrapper console script"""
    main_cli()


if __name__ == '__main__':
    main()
