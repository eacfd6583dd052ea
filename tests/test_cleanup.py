from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from tests.factories import FakeRunner, SequenceRunner, df_response, make_host
from uniupdater.cleanup import CleanupOrchestrator, clear_directory_contents
from uniupdater.disk import DeltaBand
from uniupdater.profiles import PackageManagerKind, resolve_profile


def _populate_cache(home: Path) -> Path:
    cache = home / '.cache'
    (cache / 'mesa_shader_cache' / 'ab').mkdir(parents=True)
    (cache / 'mesa_shader_cache' / 'ab' / 'blob').write_bytes(b'x' * 64)
    (cache / 'thumbnail.png').write_bytes(b'y' * 16)
    return cache


def _orchestrator(kind: PackageManagerKind, runner: FakeRunner, home: Path, **kwargs) -> CleanupOrchestrator:
    return CleanupOrchestrator(resolve_profile(kind), runner, make_host(kind, home), **kwargs)


def test_clear_directory_contents_keeps_directory(tmp_path: Path) -> None:
    cache = _populate_cache(tmp_path)
    outside = tmp_path / 'keep.txt'
    outside.write_text('keep')
    (cache / 'link').symlink_to(outside)

    failures = clear_directory_contents(cache)

    assert failures == []
    assert cache.is_dir()
    assert os.access(cache, os.R_OK | os.W_OK | os.X_OK)
    assert list(cache.iterdir()) == []
    assert outside.read_text() == 'keep'


def test_user_cache_cleared_but_directory_remains(tmp_path: Path) -> None:
    cache = _populate_cache(tmp_path)
    orchestrator = _orchestrator(PackageManagerKind.APT, FakeRunner(), tmp_path)

    assert orchestrator.clear_user_cache() is True
    assert cache.is_dir()
    assert list(cache.iterdir()) == []


def test_user_cache_skipped_when_disabled(tmp_path: Path) -> None:
    cache = _populate_cache(tmp_path)
    orchestrator = _orchestrator(PackageManagerKind.APT, FakeRunner(), tmp_path, clean_user_cache=False)

    assert orchestrator.clear_user_cache() is None
    assert (cache / 'thumbnail.png').exists()


def test_user_cache_missing_is_not_an_error(tmp_path: Path) -> None:
    orchestrator = _orchestrator(PackageManagerKind.APT, FakeRunner(), tmp_path)
    assert orchestrator.clear_user_cache() is None


def test_user_cache_owned_by_someone_else_is_left_alone(tmp_path: Path) -> None:
    cache = _populate_cache(tmp_path)
    host = make_host(PackageManagerKind.APT, tmp_path, uid=cache.stat().st_uid + 1)
    orchestrator = CleanupOrchestrator(resolve_profile(PackageManagerKind.APT), FakeRunner(), host)

    assert orchestrator.clear_user_cache() is False
    assert (cache / 'thumbnail.png').exists()


def test_pacman_autoremove_without_orphans_issues_no_removal(tmp_path: Path) -> None:
    runner = FakeRunner({('pacman', '-Qtdq'): (1, '')})
    orchestrator = _orchestrator(PackageManagerKind.PACMAN, runner, tmp_path)

    assert orchestrator.autoremove() is True
    assert not runner.called('sudo', 'pacman', '-Rns')


def test_pacman_autoremove_removes_listed_orphans(tmp_path: Path) -> None:
    runner = FakeRunner({('pacman', '-Qtdq'): (0, 'libfoo\npython-bar\n')})
    orchestrator = _orchestrator(PackageManagerKind.PACMAN, runner, tmp_path)

    assert orchestrator.autoremove() is True
    assert runner.calls[-1] == ('sudo', 'pacman', '-Rns', 'libfoo', 'python-bar')


def test_pacman_orphan_query_failure_is_reported(tmp_path: Path) -> None:
    runner = FakeRunner({('pacman', '-Qtdq'): (127, '', 'pacman: not found')})
    orchestrator = _orchestrator(PackageManagerKind.PACMAN, runner, tmp_path)

    assert orchestrator.autoremove() is False
    assert not runner.called('sudo', 'pacman', '-Rns')


def test_markup_like_paths_are_printed_verbatim(tmp_path: Path, capsys) -> None:
    home = tmp_path / '[/x]'
    (home / '.cache').mkdir(parents=True)
    host = replace(make_host(PackageManagerKind.APT, home), user_uid=home.stat().st_uid + 1)
    orchestrator = CleanupOrchestrator(resolve_profile(PackageManagerKind.APT), FakeRunner(), host)

    assert orchestrator.clear_user_cache() is False
    assert '[/x]' in capsys.readouterr().out.replace('\n', '')


def test_autoremove_failure_is_reported(tmp_path: Path) -> None:
    runner = FakeRunner({('sudo', 'apt', 'autoremove'): (100, '')})
    assert _orchestrator(PackageManagerKind.APT, runner, tmp_path).autoremove() is False


def test_clean_package_cache(tmp_path: Path) -> None:
    runner = FakeRunner()
    assert _orchestrator(PackageManagerKind.DNF, runner, tmp_path).clean_package_cache() is True
    assert runner.called('sudo', 'dnf', 'clean', 'all')


def test_run_reports_delta_and_continues_past_failures(tmp_path: Path) -> None:
    cache = _populate_cache(tmp_path)
    runner = SequenceRunner(
        {('df',): [df_response(used_kib=100 * 1024 * 1024), df_response(used_kib=80 * 1024 * 1024)]},
        {('sudo', 'apt', 'autoremove'): (1, '')},
    )
    report = _orchestrator(PackageManagerKind.APT, runner, tmp_path).run()

    assert report.warnings == ['autoremove failed']
    assert report.delta.band is DeltaBand.FREED
    assert report.delta.freed_gib == 20.00
    assert runner.called('sudo', 'apt', 'clean')
    assert report.user_cache_cleared
    assert list(cache.iterdir()) == []

    df_calls = [i for i, call in enumerate(runner.calls) if call[0] == 'df']
    autoremove_call = runner.calls.index(('sudo', 'apt', 'autoremove', '--purge'))
    assert df_calls[0] < autoremove_call < df_calls[-1]
