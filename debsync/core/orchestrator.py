"""Sync orchestrator — the central coordinator for a debsync run.

Wires the resolver, freshness gate, verified fetcher and atomic publisher
into the resolve → gate → fetch+verify → publish sequence.  The first
fatal error aborts the run; it propagates to the caller after the working
area has been removed.  Re-running is always safe: the freshness gate turns
a repeat into a cheap no-op.
"""

from __future__ import annotations

import logging

from debsync.bridge.verifiers import SignatureVerifier, build_verifier
from debsync.config import SyncConfig
from debsync.core.deployment_guard import enforce_deployment_constraints
from debsync.core.executor import CommandRunner, build_runners
from debsync.core.fetcher import VerifiedFetcher
from debsync.core.freshness import FreshnessGate
from debsync.core.publisher import AtomicPublisher
from debsync.core.resolver import ReleaseResolver
from debsync.core.workspace import working_area
from debsync.errors import VerificationError
from debsync.models.reports import SyncReport, SyncStatus

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs one sync of the configured upstream package.

    Parameters
    ----------
    config:
        Sync configuration.  Uses env-driven defaults if not provided.
    sandbox_runner:
        Runner for network fetches.  Built from *config* if omitted.
    local_runner:
        Runner for ``gpg`` and the index tool.  Built from *config* if omitted.
    verifier:
        Signature backend.  Built from *config* if omitted.
    """

    def __init__(
        self,
        config: SyncConfig | None = None,
        *,
        sandbox_runner: CommandRunner | None = None,
        local_runner: CommandRunner | None = None,
        verifier: SignatureVerifier | None = None,
    ) -> None:
        self.config = config or SyncConfig()

        # Fails hard if production constraints are violated
        enforce_deployment_constraints(self.config)

        if sandbox_runner is None or local_runner is None:
            default_sandbox, default_local = build_runners(self.config)
            sandbox_runner = sandbox_runner or default_sandbox
            local_runner = local_runner or default_local

        self.resolver = ReleaseResolver(self.config, sandbox_runner)
        self.gate = FreshnessGate(self.config.arch_dir)
        self.fetcher = VerifiedFetcher(
            self.config,
            sandbox_runner,
            verifier or build_verifier(self.config, local_runner),
        )
        self.publisher = AtomicPublisher.from_config(self.config, local_runner)

    def check(self) -> SyncReport:
        """Resolve and compare only; never downloads the artifact."""
        release = self.resolver.resolve()
        freshness = self.gate.check(release.sanitized_name, release.updated_at)
        status = (
            SyncStatus.UPDATE_AVAILABLE if freshness.needs_update else SyncStatus.UP_TO_DATE
        )
        return SyncReport(
            status=status,
            release=release,
            freshness=freshness,
            destination=self.gate.local_path(release.sanitized_name),
        )

    def run(self) -> SyncReport:
        """Run the full pipeline.

        Returns a report with status ``installed`` or ``up_to_date``.

        Raises
        ------
        DebsyncError
            Any fatal condition; the repository is left as it was unless
            the failure happened during index regeneration.
        """
        release = self.resolver.resolve()
        freshness = self.gate.check(release.sanitized_name, release.updated_at)
        if not freshness.needs_update:
            return SyncReport(
                status=SyncStatus.UP_TO_DATE,
                release=release,
                freshness=freshness,
                destination=self.gate.local_path(release.sanitized_name),
            )

        with working_area(self.config.work_dir) as work_dir:
            try:
                artifact = self.fetcher.fetch_and_verify(release, work_dir)
            except VerificationError:
                logger.critical(
                    "Signature verification FAILED for %s from %s — artifact discarded",
                    release.sanitized_name,
                    release.package_url,
                )
                raise
            destination, index_path = self.publisher.publish(
                artifact.artifact_path, release.sanitized_name, release.updated_at
            )

        return SyncReport(
            status=SyncStatus.INSTALLED,
            release=release,
            freshness=freshness,
            destination=destination,
            index_path=index_path,
            sha256=artifact.sha256,
        )
