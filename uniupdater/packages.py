import shutil
from dataclasses import dataclass
from pathlib import Path

from uniupdater.constants import BOOT_MOUNT
from uniupdater.output import debug, error, info, raw, success, warning
from uniupdater.profiles import PackageManagerProfile
from uniupdater.runner import CommandResult, CommandRunner


@dataclass(frozen=True)
class PhaseResult:
    """Classified result of an update step."""

    succeeded: bool
    result: CommandResult | None = None

    @property
    def exit_code(self) -> int | None:
        return self.result.exit_code if self.result else None


class UpdateExecutor:
    """Runs the metadata refresh and upgrade for one package manager."""

    def __init__(self, profile: PackageManagerProfile, runner: CommandRunner, elevation: tuple[str, ...] = ()):
        self.profile = profile
        self.runner = runner
        self.elevation = elevation

    def _elevated(self, argv: tuple[str, ...]) -> list[str]:
        return [*self.elevation, *argv]

    def refresh_metadata(self) -> PhaseResult:
        """Refresh package metadata. Failure is fatal to the update phase."""
        profile = self.profile
        if not profile.update:
            return PhaseResult(True)

        info('Running package list update...')
        # A combined update/upgrade may prompt, so it needs the terminal
        capture = not profile.update_is_combined_with_upgrade
        result = self.runner.run(self._elevated(profile.update), capture=capture)

        if capture:
            raw(result.stdout)
            if result.stderr.strip():
                raw('--- stderr ---')
                raw(result.stderr)
            debug(f'Update command exit code: {result.exit_code}')

        if result.ok:
            success(f'{profile.display_name} package lists updated')
            return PhaseResult(True, result)

        if profile.is_update_success(result.exit_code):
            success(f'{profile.display_name} package list check complete (exit code {result.exit_code})')
            return PhaseResult(True, result)

        error(f'{profile.display_name} package list update failed (exit code {result.exit_code})')
        return PhaseResult(False, result)

    def apply_upgrade(self) -> PhaseResult:
        """Apply upgrades. Any non-zero exit is a failure."""
        profile = self.profile
        if not profile.upgrade:
            return PhaseResult(True)

        info('Running system upgrade...')
        result = self.runner.run(self._elevated(profile.upgrade), capture=False)
        if result.ok:
            success(f'{profile.display_name} system upgrade completed')
            return PhaseResult(True, result)

        error(f'{profile.display_name} system upgrade failed (exit code {result.exit_code})')
        return PhaseResult(False, result)

    def count_packages(self) -> int | None:
        """Count installed packages, or None if the count command fails."""
        result = self.runner.run(self.profile.package_count)
        if not result.ok:
            return None
        return sum(1 for line in result.stdout.splitlines() if line.strip())

    def check_boot_partition(self, enabled: bool = True, boot: Path = BOOT_MOUNT) -> bool | None:
        """Warn when /boot is not mounted. Returns None when skipped."""
        if not self.profile.boot_check_relevant:
            return None
        if not enabled:
            info(f'Skipping {boot} mount check as configured')
            return None

        info(f'Checking if {boot} is mounted...')
        result = self.runner.run(['mountpoint', '-q', str(boot)])
        if result.ok:
            success(f'{boot} is mounted')
            return True
        warning(f'{boot} is NOT mounted! This might be important for kernel updates.')
        return False


def update_flatpak(runner: CommandRunner, auto_confirm: bool = False, which=shutil.which) -> bool | None:
    """Update Flatpak apps. Returns None when flatpak is not installed."""
    if not which('flatpak'):
        info('Flatpak not found, skipping Flatpak update')
        return None

    listed = runner.run(['flatpak', 'list', '--columns=application'])
    if listed.ok:
        count = sum(1 for line in listed.stdout.splitlines() if line.strip())
        info(f'Found {count} Flatpak packages. Updating...')
    else:
        info('Updating Flatpak packages...')

    argv = ['flatpak', 'update']
    if auto_confirm:
        argv.append('-y')
    result = runner.run(argv, capture=False)
    if result.ok:
        success('Flatpak packages updated')
        return True
    warning(f'Flatpak update failed (exit code {result.exit_code})')
    return False
