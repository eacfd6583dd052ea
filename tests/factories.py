from __future__ import annotations

from pathlib import Path

from uniupdater.probe import HostInfo
from uniupdater.profiles import PackageManagerKind
from uniupdater.runner import CommandResult


class FakeRunner:
    """Records every argv and answers from scripted responses.

    Responses are keyed by an argv prefix; the longest matching prefix wins.
    Unmatched commands succeed with empty output.
    """

    def __init__(self, responses: dict[tuple[str, ...], tuple[int, str] | tuple[int, str, str]] | None = None):
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, ...]] = []
        self.captured: list[bool] = []

    def run(self, argv, capture=True, env=None) -> CommandResult:
        argv = tuple(argv)
        self.calls.append(argv)
        self.captured.append(capture)
        best = None
        for prefix in self.responses:
            if argv[: len(prefix)] == prefix and (best is None or len(prefix) > len(best)):
                best = prefix
        if best is None:
            return CommandResult(argv, 0)
        code, stdout, *rest = self.responses[best]
        return CommandResult(argv, code, stdout, rest[0] if rest else '')

    def called(self, *prefix: str) -> bool:
        return any(call[: len(prefix)] == prefix for call in self.calls)


def make_which(*present: str):
    def which(name: str) -> str | None:
        return f'/usr/bin/{name}' if name in present else None

    return which


def make_host(kind: PackageManagerKind, home: Path, elevation: tuple[str, ...] = ('sudo',), uid: int | None = None) -> HostInfo:
    return HostInfo(
        kind=kind,
        elevation=elevation,
        invoking_user='alice',
        user_home=home,
        user_uid=home.stat().st_uid if uid is None else uid,
        user_gid=0,
    )


DF_OUTPUT = ' Used  1K-blocks\n{used} {size}\n'


def df_response(used_kib: int, size_kib: int = 500 * 1024 * 1024) -> tuple[int, str]:
    return 0, DF_OUTPUT.format(used=used_kib, size=size_kib)


class SequenceRunner(FakeRunner):
    """FakeRunner whose answers for some prefixes change on each call."""

    def __init__(self, sequences: dict[tuple[str, ...], list[tuple[int, str]]], responses=None):
        super().__init__(responses)
        self.sequences = {prefix: iter(answers) for prefix, answers in sequences.items()}

    def run(self, argv, capture=True, env=None) -> CommandResult:
        for prefix, answers in self.sequences.items():
            if tuple(argv[: len(prefix)]) == prefix:
                self.responses[prefix] = next(answers)
        return super().run(argv, capture, env)
