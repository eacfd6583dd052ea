from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from uniupdater.disk import DiskDelta
from uniupdater.profiles import PackageManagerKind


class ConfirmationPolicy(str, Enum):
    ALWAYS = 'always'
    NEVER = 'never'
    PROMPT = 'prompt'

    def decide(self, confirm: Callable[[str], bool], question: str) -> bool:
        """Resolve a yes/no decision; only PROMPT asks."""
        if self is ConfirmationPolicy.ALWAYS:
            return True
        if self is ConfirmationPolicy.NEVER:
            return False
        return confirm(question)


def resolve_cleanup_policy(configured: str, override: bool | None) -> ConfirmationPolicy:
    """Resolve the effective cleanup policy from config and CLI override."""
    if override is None:
        return ConfirmationPolicy(configured)
    return ConfirmationPolicy.ALWAYS if override else ConfirmationPolicy.NEVER


class Phase(str, Enum):
    DETECT = 'detect'
    RESOLVE_PROFILE = 'resolve_profile'
    REFRESH_METADATA = 'refresh_metadata'
    APPLY_UPGRADE = 'apply_upgrade'
    FLATPAK_UPDATE = 'flatpak_update'
    CLEANUP = 'cleanup'
    REPORT = 'report'
    DONE = 'done'


@dataclass
class RunOutcome:
    """Aggregate state of one run; drives the process exit code."""

    phase: Phase = Phase.DETECT
    manager: PackageManagerKind | None = None
    update_succeeded: bool = False
    upgrade_failed: bool = False
    flatpak_updated: bool | None = None
    cleanup_requested: bool = False
    cleanup_ran: bool = False
    abort_reason: str | None = None
    warnings: list[str] = field(default_factory=list)
    disk_delta: DiskDelta | None = None

    @property
    def aborted(self) -> bool:
        return self.abort_reason is not None

    def abort(self, reason: str):
        self.abort_reason = reason
        self.update_succeeded = False

    def finalize(self):
        self.phase = Phase.DONE

    @property
    def exit_code(self) -> int:
        if self.aborted or not self.update_succeeded:
            return 1
        return 0
