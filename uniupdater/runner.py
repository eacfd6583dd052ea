import subprocess
from dataclasses import dataclass
from typing import Mapping, Protocol, Sequence

# Shell conventions for a command that could not be started
NOT_FOUND = 127
NOT_EXECUTABLE = 126


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    argv: tuple[str, ...]
    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        capture: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...


class SubprocessRunner:
    """Run argument vectors with subprocess, blocking until they exit.

    With capture=False the command inherits the terminal, so interactive
    package manager prompts keep working; stdout and stderr are then empty.
    """

    def run(
        self,
        argv: Sequence[str],
        capture: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        argv = tuple(argv)
        try:
            result = subprocess.run(
                list(argv),
                capture_output=capture,
                text=True,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as e:
            return CommandResult(argv, NOT_FOUND, '', str(e))
        except PermissionError as e:
            return CommandResult(argv, NOT_EXECUTABLE, '', str(e))

        return CommandResult(
            argv,
            result.returncode,
            result.stdout or '',
            result.stderr or '',
        )
