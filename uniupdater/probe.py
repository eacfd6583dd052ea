import os
import pwd
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

from uniupdater.profiles import PackageManagerKind

Which = Callable[[str], str | None]


class ProbeError(RuntimeError):
    """The host cannot be maintained by this tool."""


class UnsupportedHostError(ProbeError):
    pass


class ElevationUnavailableError(ProbeError):
    pass


@dataclass(frozen=True)
class HostInfo:
    """What the prober learned about the host and the invoking user."""

    kind: PackageManagerKind
    elevation: tuple[str, ...]
    invoking_user: str
    user_home: Path
    user_uid: int
    user_gid: int


def detect_manager(which: Which = shutil.which) -> PackageManagerKind:
    """Return the first supported package manager found in PATH."""
    for kind in PackageManagerKind:
        if which(kind.executable):
            return kind
    names = ', '.join(k.executable for k in PackageManagerKind)
    raise UnsupportedHostError(f'Unsupported package manager. Could not find any of: {names}')


def resolve_elevation(euid: int, which: Which = shutil.which, tool: str = 'sudo') -> tuple[str, ...]:
    """Return the argv prefix needed for privileged commands."""
    if euid == 0:
        return ()
    if not which(tool):
        raise ElevationUnavailableError(
            f'{tool} not found and not running as root. Install {tool} or run as root.'
        )
    return (tool,)


def resolve_invoking_user(euid: int, environ: Mapping[str, str]) -> tuple[str, Path, int, int]:
    """Resolve (name, home, uid, gid) of the user the run is on behalf of.

    Under sudo this is SUDO_USER, not root.
    """
    sudo_user = environ.get('SUDO_USER')
    if euid == 0 and sudo_user:
        try:
            entry = pwd.getpwnam(sudo_user)
        except KeyError:
            raise ProbeError(f'SUDO_USER "{sudo_user}" not found in the password database') from None
        return entry.pw_name, Path(entry.pw_dir), entry.pw_uid, entry.pw_gid

    try:
        entry = pwd.getpwuid(euid)
    except KeyError:
        # Containers often run with uids that have no passwd entry
        home = environ.get('HOME')
        if not home:
            raise ProbeError(f'Cannot resolve a home directory for uid {euid}') from None
        return environ.get('USER', str(euid)), Path(home), euid, os.getegid()

    home = environ.get('HOME') or entry.pw_dir
    return entry.pw_name, Path(home), entry.pw_uid, entry.pw_gid


def probe_host(
    which: Which = shutil.which,
    euid: int | None = None,
    environ: Mapping[str, str] | None = None,
    elevation_tool: str = 'sudo',
    allow_root: bool = False,
) -> HostInfo:
    """Probe the host. Read-only: PATH lookups and environment reads."""
    if euid is None:
        euid = os.geteuid()
    if environ is None:
        environ = os.environ

    kind = detect_manager(which)

    if euid == 0 and not environ.get('SUDO_USER') and not allow_root:
        raise ElevationUnavailableError(
            'Refusing to run as root directly. Run as a regular user, through sudo, '
            'or set allow_root: true in the config.'
        )

    elevation = resolve_elevation(euid, which, elevation_tool)
    user, home, uid, gid = resolve_invoking_user(euid, environ)

    return HostInfo(
        kind=kind,
        elevation=elevation,
        invoking_user=user,
        user_home=home,
        user_uid=uid,
        user_gid=gid,
    )
