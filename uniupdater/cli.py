import dataclasses
import sys
from pathlib import Path

import typer
from rich.markup import escape

from uniupdater import __version__
from uniupdater.config import load_settings
from uniupdater.constants import CONFIG_FILE
from uniupdater.output import configure, error, info
from uniupdater.plan import resolve_cleanup_policy
from uniupdater.runner import SubprocessRunner
from uniupdater.workflow import run_maintenance

app = typer.Typer(
    name='uniupdater',
    help='Update system packages (Arch, Debian, Fedora) and Flatpaks, and clean up caches',
    add_completion=False,
    context_settings={
        'help_option_names': ['--help', '-h'],
    },
)


def version_callback(value: bool):
    if value:
        typer.echo(f'uniupdater {__version__}')
        raise typer.Exit()


def prompt_confirm(question: str) -> bool:
    """Ask on the terminal; a non-interactive stdin declines."""
    if not sys.stdin.isatty():
        info('Not running interactively, answering no')
        return False
    return typer.confirm(question, default=False)


@app.command()
def main_command(
    clean: bool | None = typer.Option(
        None, '--clean/--no-clean', help='Force the cleanup phase on or off instead of asking'
    ),
    yes: bool = typer.Option(False, '--yes', '-y', help='Auto-confirm package manager prompts'),
    config: Path = typer.Option(CONFIG_FILE, '--config', '-c', help='Path to config file'),
    debug: bool = typer.Option(False, '--debug', help='Print environment diagnostics'),
    version: bool = typer.Option(
        False, '--version', '-v', callback=version_callback, is_eager=True, help='Show version'
    ),
):
    """Update the system, then optionally remove orphans and clear caches."""
    try:
        settings = load_settings(config)
    except (RuntimeError, OSError) as e:
        error(escape(str(e)))
        raise typer.Exit(1)

    if yes:
        settings = dataclasses.replace(settings, auto_confirm=True)
    configure(use_colors=settings.use_colors, verbose=debug)

    policy = resolve_cleanup_policy(settings.cleanup, clean)
    outcome = run_maintenance(settings, policy, SubprocessRunner(), prompt_confirm)
    raise typer.Exit(outcome.exit_code)


def main():
    app()


if __name__ == '__main__':
    main()
