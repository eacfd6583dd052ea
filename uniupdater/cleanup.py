import shutil
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape

from uniupdater import disk
from uniupdater.constants import USER_CACHE_NAME
from uniupdater.disk import DiskDelta
from uniupdater.output import header, info, success, warning
from uniupdater.probe import HostInfo
from uniupdater.profiles import PackageManagerProfile
from uniupdater.runner import CommandRunner


@dataclass
class CleanupReport:
    """What the cleanup phase did. Step failures end up in warnings."""

    warnings: list[str] = field(default_factory=list)
    delta: DiskDelta | None = None
    user_cache_cleared: bool = False


def clear_directory_contents(path: Path) -> list[str]:
    """Remove everything inside path, keeping path itself.

    Symlinks are unlinked, never followed. Returns per-entry failures.
    """
    failures = []
    for entry in path.iterdir():
        try:
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        except OSError as e:
            failures.append(f'{entry.name}: {e.strerror or e}')
    return failures


class CleanupOrchestrator:
    """Best-effort cleanup: orphans, package cache, user cache."""

    def __init__(
        self,
        profile: PackageManagerProfile,
        runner: CommandRunner,
        host: HostInfo,
        clean_user_cache: bool = True,
    ):
        self.profile = profile
        self.runner = runner
        self.host = host
        self.clean_user_cache = clean_user_cache

    def _elevated(self, argv) -> list[str]:
        return [*self.host.elevation, *argv]

    def _find_orphans(self) -> list[str] | None:
        """List orphaned packages, or None when the query itself failed."""
        result = self.runner.run(self.profile.orphan_query)
        orphans = [line for line in result.stdout.split('\n') if line.strip()]
        # pacman -Qtdq exits 1 with no output when there are no orphans
        if result.ok or (result.exit_code == 1 and not orphans):
            return orphans
        detail = f': {escape(result.stderr.strip())}' if result.stderr.strip() else ''
        warning(f'Orphan query failed (exit code {result.exit_code}){detail}')
        return None

    def autoremove(self) -> bool:
        """Remove orphaned packages. Having none is not an error."""
        profile = self.profile
        if not profile.autoremove:
            return True

        info('Removing unused packages...')
        argv = list(profile.autoremove)
        if profile.orphan_query:
            orphans = self._find_orphans()
            if orphans is None:
                return False
            if not orphans:
                info('No orphans found')
                return True
            argv.extend(orphans)

        result = self.runner.run(self._elevated(argv), capture=False)
        if not result.ok:
            warning(f'Autoremove encountered issues (exit code {result.exit_code})')
            return False
        return True

    def clean_package_cache(self) -> bool:
        """Clean the package manager cache, reporting its size around it."""
        profile = self.profile
        if not profile.cache_clean:
            return True

        before = disk.directory_size(self.runner, profile.cache_dir, self.host.elevation)
        info(f'Cleaning {profile.display_name} cache (size before: {escape(before or "unknown")})...')

        result = self.runner.run(self._elevated(profile.cache_clean), capture=False)

        after = disk.directory_size(self.runner, profile.cache_dir, self.host.elevation)
        info(f'{profile.display_name} cache size after: {escape(after or "unknown")}')

        if not result.ok:
            warning(f'Cache clean failed (exit code {result.exit_code})')
            return False
        return True

    def clear_user_cache(self) -> bool | None:
        """Empty the invoking user's cache directory. None when skipped."""
        if not self.clean_user_cache:
            info('Skipping user cache cleanup as configured')
            return None

        cache_dir = self.host.user_home / USER_CACHE_NAME
        shown = escape(str(cache_dir))
        if not cache_dir.is_dir() or cache_dir.is_symlink():
            info(f'User cache {shown} not found or not a directory')
            return None

        owner = cache_dir.stat().st_uid
        if owner != self.host.user_uid:
            warning(f'{shown} is owned by uid {owner}, not {escape(self.host.invoking_user)}; leaving it alone')
            return False

        before = disk.directory_size(self.runner, cache_dir)
        info(f'Cleaning user cache: {shown} (size before: {escape(before or "unknown")})')

        try:
            failures = clear_directory_contents(cache_dir)
        except OSError as e:
            warning(f'Could not read {shown}: {escape(str(e.strerror or e))}')
            return False

        after = disk.directory_size(self.runner, cache_dir)
        info(f'User cache size after: {escape(after or "unknown")}')

        if failures:
            warning(f'Could not remove {len(failures)} entries from {shown}')
            for failure in failures[:10]:
                info(f'  {escape(failure)}')
            return False
        return True

    def run(self) -> CleanupReport:
        """Run every step, then report the disk delta."""
        report = CleanupReport()
        header(f'Starting cleanup for {self.profile.display_name}')

        before = disk.sample(self.runner)
        info(f'Disk usage before cleanup: {before.describe()}')

        if not self.autoremove():
            report.warnings.append('autoremove failed')
        if not self.clean_package_cache():
            report.warnings.append('package cache clean failed')
        cleared = self.clear_user_cache()
        if cleared is False:
            report.warnings.append('user cache was not fully cleared')
        report.user_cache_cleared = bool(cleared)

        after = disk.sample(self.runner)
        info(f'Disk usage after cleanup: {after.describe()}')

        report.delta = disk.delta(before, after)
        if report.delta.band is disk.DeltaBand.FREED:
            success(report.delta.message)
        elif report.delta.band is disk.DeltaBand.INCREASED:
            warning(report.delta.message)
            report.warnings.append('disk usage increased during cleanup')
        else:
            info(report.delta.message)

        return report
