"""End-to-end sync scenarios.

These tests run the SyncOrchestrator against a fake upstream (release API,
package, detached Ed25519 signature) and a real temporary repository on
disk, exercising resolver, freshness gate, fetcher, verifier, publisher
and index builder together.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest

from conftest import (
    PACKAGE_BYTES,
    PACKAGE_NAME,
    PACKAGE_URL,
    SIGNATURE_URL,
    UPSTREAM_EPOCH,
    FakeRunner,
    snapshot_tree,
)
from debsync.core.orchestrator import SyncOrchestrator
from debsync.errors import ResolutionError, VerificationError
from debsync.models.reports import SyncStatus


def _orchestrator(config, runner: FakeRunner) -> SyncOrchestrator:
    return SyncOrchestrator(config, sandbox_runner=runner, local_runner=runner)


class TestFreshInstall:
    def test_artifact_installed_with_upstream_mtime(self, orchestrator, config):
        report = orchestrator.run()

        installed = config.repo_path / "amd64" / PACKAGE_NAME
        assert report.status == SyncStatus.INSTALLED
        assert installed.read_bytes() == PACKAGE_BYTES
        assert installed.stat().st_mtime == UPSTREAM_EPOCH
        assert datetime.fromtimestamp(installed.stat().st_mtime, timezone.utc) == datetime(
            2024, 1, 1, tzinfo=timezone.utc
        )

    def test_index_regenerated(self, orchestrator, config):
        orchestrator.run()
        index = (config.repo_path / "Packages").read_text()
        assert f"Filename: ./amd64/{PACKAGE_NAME}" in index

    def test_repository_holds_only_artifact_and_index(self, orchestrator, config):
        orchestrator.run()
        assert sorted(snapshot_tree(config.repo_path)) == ["Packages", f"amd64/{PACKAGE_NAME}"]


class TestIdempotency:
    def test_second_run_is_a_no_op(self, config, upstream):
        first = _orchestrator(config, upstream).run()
        assert first.status == SyncStatus.INSTALLED
        after_first = snapshot_tree(config.repo_path)
        upstream.calls.clear()

        second = _orchestrator(config, upstream).run()

        assert second.status == SyncStatus.UP_TO_DATE
        assert upstream.urls_fetched() == [config.release_url]
        assert "dpkg-scanpackages" not in upstream.tools_called()
        assert snapshot_tree(config.repo_path) == after_first

    @pytest.mark.parametrize(
        "updated_at",
        ["2024-01-01T00:00:00.500Z", "2024-01-01T00:00:00.001Z", "2024-01-01T00:00:00.999999Z"],
    )
    def test_fractional_upstream_time_is_idempotent(
        self, config, upstream, make_asset, make_release_json, updated_at
    ):
        upstream.responses[config.release_url] = make_release_json([
            make_asset(PACKAGE_NAME, url=PACKAGE_URL, updated_at=updated_at),
            make_asset(PACKAGE_NAME + ".asc", url=SIGNATURE_URL),
        ])
        assert _orchestrator(config, upstream).run().status == SyncStatus.INSTALLED
        after_first = snapshot_tree(config.repo_path)
        upstream.calls.clear()

        second = _orchestrator(config, upstream).run()

        assert second.status == SyncStatus.UP_TO_DATE
        assert upstream.urls_fetched() == [config.release_url]
        assert snapshot_tree(config.repo_path) == after_first

    def test_local_mtime_equal_to_upstream_skips_fetch(self, config, upstream):
        config.arch_dir.mkdir(parents=True)
        local = config.arch_dir / PACKAGE_NAME
        local.write_bytes(b"whatever is there")
        os.utime(local, (UPSTREAM_EPOCH, UPSTREAM_EPOCH))

        report = _orchestrator(config, upstream).run()

        assert report.status == SyncStatus.UP_TO_DATE
        assert PACKAGE_URL not in upstream.urls_fetched()
        assert SIGNATURE_URL not in upstream.urls_fetched()


class TestNewUpstreamRelease:
    def test_newer_release_replaces_and_reindexes(
        self, config, upstream, make_asset, make_release_json, sign
    ):
        _orchestrator(config, upstream).run()

        newer = b"package bytes for the rebuilt release"
        upstream.responses[config.release_url] = make_release_json([
            make_asset(PACKAGE_NAME, url=PACKAGE_URL, updated_at="2024-02-01T12:00:00Z"),
            make_asset(PACKAGE_NAME + ".asc", url=SIGNATURE_URL),
        ])
        upstream.responses[PACKAGE_URL] = newer
        upstream.responses[SIGNATURE_URL] = sign(newer)
        upstream.calls.clear()

        report = _orchestrator(config, upstream).run()

        installed = config.arch_dir / PACKAGE_NAME
        assert report.status == SyncStatus.INSTALLED
        assert installed.read_bytes() == newer
        assert installed.stat().st_mtime == int(
            datetime(2024, 2, 1, 12, tzinfo=timezone.utc).timestamp()
        )
        assert "dpkg-scanpackages" in upstream.tools_called()

    def test_new_version_name_kept_alongside_old(
        self, config, upstream, make_asset, make_release_json, sign
    ):
        _orchestrator(config, upstream).run()

        name = "proj-1.3.0-amd64.deb"
        upstream.responses[config.release_url] = make_release_json([
            make_asset(name, url="https://api.example.test/a/201",
                       updated_at="2024-03-01T00:00:00Z"),
            make_asset(name + ".asc", url="https://api.example.test/a/202"),
        ], tag_name="v1.3.0")
        upstream.responses["https://api.example.test/a/201"] = b"v1.3.0"
        upstream.responses["https://api.example.test/a/202"] = sign(b"v1.3.0")

        _orchestrator(config, upstream).run()

        assert sorted(p.name for p in config.arch_dir.iterdir()) == [PACKAGE_NAME, name]
        index = config.index_path.read_text()
        assert f"./amd64/{PACKAGE_NAME}" in index
        assert f"./amd64/{name}" in index


class TestFailureScenarios:
    def test_signature_missing(self, config, make_asset, make_release_json):
        runner = FakeRunner({
            config.release_url: make_release_json([make_asset(PACKAGE_NAME, url=PACKAGE_URL)]),
            PACKAGE_URL: PACKAGE_BYTES,
        })
        with pytest.raises(ResolutionError):
            _orchestrator(config, runner).run()
        assert not config.repo_path.exists()
        assert runner.urls_fetched() == [config.release_url]

    def test_corrupted_download(self, config, upstream):
        upstream.responses[PACKAGE_URL] = b"corrupted in transit"
        with pytest.raises(VerificationError):
            _orchestrator(config, upstream).run()
        assert snapshot_tree(config.repo_path) == {}

    def test_recovers_on_next_run(self, config, upstream):
        upstream.responses[PACKAGE_URL] = b"corrupted in transit"
        with pytest.raises(VerificationError):
            _orchestrator(config, upstream).run()

        upstream.responses[PACKAGE_URL] = PACKAGE_BYTES
        report = _orchestrator(config, upstream).run()
        assert report.status == SyncStatus.INSTALLED
