from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path


class PackageManagerKind(str, Enum):
    """Supported package managers, in detection priority order."""

    PACMAN = 'pacman'
    APT = 'apt'
    DNF = 'dnf'

    @property
    def executable(self) -> str:
        return self.value


@dataclass(frozen=True)
class PackageManagerProfile:
    """Concrete commands and policy flags for one package manager."""

    kind: PackageManagerKind
    display_name: str
    update: tuple[str, ...]
    upgrade: tuple[str, ...]
    autoremove: tuple[str, ...]
    cache_clean: tuple[str, ...]
    cache_dir: Path
    package_count: tuple[str, ...]
    confirm_flag: str
    orphan_query: tuple[str, ...] = ()
    soft_success_codes: frozenset[int] = frozenset()
    boot_check_relevant: bool = False
    update_is_combined_with_upgrade: bool = False

    def is_update_success(self, exit_code: int) -> bool:
        return exit_code == 0 or exit_code in self.soft_success_codes


# dnf check-update exits 100 when updates are available
DNF_UPDATES_AVAILABLE = 100

PROFILES = {
    PackageManagerKind.PACMAN: PackageManagerProfile(
        kind=PackageManagerKind.PACMAN,
        display_name='Pacman (Arch)',
        update=('pacman', '-Syu'),
        upgrade=(),
        orphan_query=('pacman', '-Qtdq'),
        autoremove=('pacman', '-Rns'),
        cache_clean=('pacman', '-Scc'),
        cache_dir=Path('/var/cache/pacman/pkg'),
        package_count=('pacman', '-Q'),
        confirm_flag='--noconfirm',
        boot_check_relevant=True,
        update_is_combined_with_upgrade=True,
    ),
    PackageManagerKind.APT: PackageManagerProfile(
        kind=PackageManagerKind.APT,
        display_name='APT (Debian/Ubuntu)',
        update=('apt', 'update'),
        upgrade=('apt', 'upgrade'),
        autoremove=('apt', 'autoremove', '--purge'),
        cache_clean=('apt', 'clean'),
        cache_dir=Path('/var/cache/apt/archives'),
        package_count=('dpkg-query', '-f', '.\n', '-W'),
        confirm_flag='-y',
    ),
    PackageManagerKind.DNF: PackageManagerProfile(
        kind=PackageManagerKind.DNF,
        display_name='DNF (Fedora)',
        update=('dnf', 'check-update'),
        upgrade=('dnf', 'upgrade'),
        autoremove=('dnf', 'autoremove'),
        cache_clean=('dnf', 'clean', 'all'),
        cache_dir=Path('/var/cache/dnf'),
        package_count=('rpm', '-qa'),
        confirm_flag='-y',
        soft_success_codes=frozenset({DNF_UPDATES_AVAILABLE}),
        boot_check_relevant=True,
    ),
}


def _confirmed(argv: tuple[str, ...], flag: str) -> tuple[str, ...]:
    if not argv:
        return argv
    return argv + (flag,)


def resolve_profile(kind: PackageManagerKind, auto_confirm: bool = False) -> PackageManagerProfile:
    """Resolve the command profile for a manager.

    With auto_confirm, the manager's non-interactive flag is appended to every
    mutating command. The update command only counts as mutating when it also
    performs the upgrade.
    """
    profile = PROFILES[kind]
    if not auto_confirm:
        return profile

    flag = profile.confirm_flag
    update = profile.update
    if profile.update_is_combined_with_upgrade:
        update = _confirmed(update, flag)

    return replace(
        profile,
        update=update,
        upgrade=_confirmed(profile.upgrade, flag),
        autoremove=_confirmed(profile.autoremove, flag),
        cache_clean=_confirmed(profile.cache_clean, flag),
    )
