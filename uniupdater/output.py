from rich.console import Console
from rich.markup import escape

console = Console()
err_console = Console(stderr=True)
_verbose = False


def configure(use_colors: bool = True, verbose: bool = False):
    """Apply colour and verbosity settings to all output helpers."""
    global console, err_console, _verbose
    console = Console(no_color=not use_colors)
    err_console = Console(stderr=True, no_color=not use_colors)
    _verbose = verbose


def info(msg: str):
    console.print(msg)


def success(msg: str):
    console.print(f'[green]✓[/green] {msg}')


def warning(msg: str):
    console.print(f'[yellow]![/yellow] {msg}')


def error(msg: str):
    err_console.print(f'[red]✗[/red] {msg}')


def debug(msg: str):
    if _verbose:
        console.print(f'[dim]  {escape(msg)}[/dim]', highlight=False)


def raw(text: str):
    """Print command output verbatim, without markup."""
    if text:
        console.print(text.rstrip('\n'), markup=False, highlight=False)


def header(msg: str):
    console.print(f'\n[bold]{msg}[/bold]')
