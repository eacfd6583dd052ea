import os
import shutil
from typing import Callable

from rich.markup import escape

from uniupdater.cleanup import CleanupOrchestrator
from uniupdater.config import Settings
from uniupdater.output import debug, error, header, info, success, warning
from uniupdater.packages import UpdateExecutor, update_flatpak
from uniupdater.plan import ConfirmationPolicy, Phase, RunOutcome
from uniupdater.probe import HostInfo, ProbeError, probe_host
from uniupdater.profiles import resolve_profile
from uniupdater.runner import CommandRunner

DEBUG_ENV_VARS = ['SUDO_USER', 'PATH', 'HOME', 'TERM', 'HTTP_PROXY', 'HTTPS_PROXY', 'NO_PROXY', 'LANG', 'LC_ALL']


def log_environment(host: HostInfo):
    """Emit environment diagnostics at debug level."""
    debug(f'Invoking user: {host.invoking_user} (uid {host.user_uid})')
    debug(f'Effective user ID: {os.geteuid()}')
    debug(f'Elevation prefix: {" ".join(host.elevation) or "<none>"}')
    for name in DEBUG_ENV_VARS:
        debug(f'{name}: {os.environ.get(name, "<not set>")}')


def run_maintenance(
    settings: Settings,
    cleanup_policy: ConfirmationPolicy,
    runner: CommandRunner,
    confirm: Callable[[str], bool],
    probe: Callable[[], HostInfo] | None = None,
    which=shutil.which,
    cleanup_factory=CleanupOrchestrator,
) -> RunOutcome:
    """Run one update/cleanup cycle and return its outcome.

    Order: detect, resolve profile, refresh metadata, upgrade, flatpak,
    optional cleanup, report. Nothing mutating runs before detection
    succeeds, and cleanup only runs after a successful update phase.
    """
    outcome = RunOutcome()

    if probe is None:
        def probe():
            return probe_host(
                which=which,
                elevation_tool=settings.elevation_tool,
                allow_root=settings.allow_root,
            )

    try:
        host = probe()
    except ProbeError as e:
        error(escape(str(e)))
        outcome.abort(str(e))
        outcome.finalize()
        return outcome

    outcome.manager = host.kind
    outcome.phase = Phase.RESOLVE_PROFILE
    profile = resolve_profile(host.kind, settings.auto_confirm)
    info(f'Detected package manager: [bold]{profile.display_name}[/bold]')
    if host.elevation:
        info(f'Using {host.elevation[0]} for privileged operations')
    log_environment(host)

    executor = UpdateExecutor(profile, runner, host.elevation)
    count = executor.count_packages()
    if count is None:
        warning('Could not determine the number of installed packages')
    else:
        info(f'Found {count} native packages')

    header('Starting system update')
    executor.check_boot_partition(settings.check_boot_mount)

    outcome.phase = Phase.REFRESH_METADATA
    refreshed = executor.refresh_metadata()
    if not refreshed.succeeded:
        outcome.abort(f'package list update failed (exit code {refreshed.exit_code})')
        outcome.finalize()
        return outcome

    outcome.phase = Phase.APPLY_UPGRADE
    upgraded = executor.apply_upgrade()
    outcome.update_succeeded = upgraded.succeeded
    outcome.upgrade_failed = not upgraded.succeeded

    outcome.phase = Phase.FLATPAK_UPDATE
    if settings.update_flatpak:
        outcome.flatpak_updated = update_flatpak(runner, settings.auto_confirm, which)
        if outcome.flatpak_updated is False:
            outcome.warnings.append('flatpak update failed')

    outcome.phase = Phase.CLEANUP
    if not outcome.update_succeeded:
        warning('Skipping cleanup because the system upgrade failed')
    else:
        question = f'{host.invoking_user}, perform cleanup (remove unused packages and caches)?'
        outcome.cleanup_requested = cleanup_policy.decide(confirm, question)
        if outcome.cleanup_requested:
            orchestrator = cleanup_factory(profile, runner, host, clean_user_cache=settings.clean_user_cache)
            report = orchestrator.run()
            outcome.cleanup_ran = True
            outcome.disk_delta = report.delta
            outcome.warnings.extend(report.warnings)
        else:
            info('Skipping cleanup phase')

    outcome.phase = Phase.REPORT
    report_outcome(outcome)
    outcome.finalize()
    return outcome


def report_outcome(outcome: RunOutcome):
    """Print the end-of-run summary."""
    header('Summary:')
    if outcome.warnings:
        for w in outcome.warnings:
            warning(w)
    if outcome.exit_code == 0:
        success('System maintenance finished')
    else:
        error('System upgrade failed')
