import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from uniupdater.constants import GIB, ROOT_MOUNT
from uniupdater.output import warning
from uniupdater.runner import CommandRunner


@dataclass(frozen=True)
class DiskUsageSample:
    """Used and total bytes of a filesystem at one instant."""

    used_bytes: int
    total_bytes: int

    @property
    def is_sentinel(self) -> bool:
        return self.total_bytes == 0

    @property
    def used_gib(self) -> float:
        return round(self.used_bytes / GIB, 2)

    @property
    def total_gib(self) -> float:
        return round(self.total_bytes / GIB, 2)

    def describe(self) -> str:
        if self.is_sentinel:
            return 'unknown'
        return f'{self.used_gib:.2f} GiB / {self.total_gib:.2f} GiB'


SENTINEL = DiskUsageSample(0, 0)


class DeltaBand(str, Enum):
    FREED = 'freed'
    UNCHANGED = 'unchanged'
    INCREASED = 'increased'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class DiskDelta:
    """Signed change in used space, positive when space was freed."""

    freed_gib: float
    band: DeltaBand

    @property
    def message(self) -> str:
        if self.band is DeltaBand.FREED:
            return f'Cleanup freed {self.freed_gib:.2f} GiB'
        if self.band is DeltaBand.INCREASED:
            return (
                f'Disk usage increased by {-self.freed_gib:.2f} GiB. '
                'This can happen due to concurrent writes.'
            )
        if self.band is DeltaBand.UNKNOWN:
            return 'Could not determine the change in disk usage'
        return 'No significant change in disk space detected'


def sample(runner: CommandRunner, mount: Path = ROOT_MOUNT) -> DiskUsageSample:
    """Sample used/total space of a filesystem with df.

    Returns SENTINEL and warns when the measurement fails.
    """
    env = dict(os.environ, LC_ALL='C')
    result = runner.run(['df', '--output=used,size', str(mount)], env=env)
    if not result.ok:
        warning(f'Failed to get disk usage for {mount} (exit code {result.exit_code})')
        return SENTINEL

    lines = result.stdout.strip().split('\n')
    parts = lines[1].split() if len(lines) >= 2 else []
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        warning(f'Invalid disk usage values for {mount}: {result.stdout.strip()!r}')
        return SENTINEL

    used_k, size_k = (int(p) for p in parts)
    return DiskUsageSample(used_bytes=used_k * 1024, total_bytes=size_k * 1024)


def delta(before: DiskUsageSample, after: DiskUsageSample) -> DiskDelta:
    """Compare two samples taken in (before, after) order."""
    if before.is_sentinel or after.is_sentinel:
        return DiskDelta(0.0, DeltaBand.UNKNOWN)

    # Round both operands first so rounding noise never shows up as a change
    freed = round(before.used_gib - after.used_gib, 2)
    if freed > 0:
        return DiskDelta(freed, DeltaBand.FREED)
    if freed < 0:
        return DiskDelta(freed, DeltaBand.INCREASED)
    return DiskDelta(0.0, DeltaBand.UNCHANGED)


def directory_size(runner: CommandRunner, path: Path, elevation: tuple[str, ...] = ()) -> str | None:
    """Human-readable size of a directory, or None when it can't be measured."""
    if not path.is_dir():
        return None
    result = runner.run([*elevation, 'du', '-sh', str(path)])
    # du still prints a total when some entries were unreadable
    if not result.stdout.strip():
        return None
    return result.stdout.split()[0]
