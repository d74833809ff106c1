"""Freshness gate — decide whether the local copy is already current.

The local artifact's mtime is the only local freshness signal.  The
publisher pins it to the upstream ``updated_at``, so an unchanged release
compares equal on the next run and the run short-circuits.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from debsync.models.release import epoch_seconds
from debsync.models.reports import Freshness

logger = logging.getLogger(__name__)


class FreshnessGate:
    """Compares upstream update times against ``<repo>/<arch>/<name>`` mtimes.

    Parameters
    ----------
    arch_dir:
        The architecture subdirectory of the repository.
    """

    def __init__(self, arch_dir: Path) -> None:
        self._arch_dir = Path(arch_dir)

    def local_path(self, sanitized_name: str) -> Path:
        """Deterministic repository path for *sanitized_name*."""
        return self._arch_dir / sanitized_name

    def check(self, sanitized_name: str, upstream_updated_at: datetime) -> Freshness:
        """Classify the local copy as first install, stale, or current.

        Current iff ``upstream <= local mtime``; a local file stamped later
        than the upstream time also counts as current.
        """
        path = self.local_path(sanitized_name)
        try:
            local_mtime = path.stat().st_mtime
        except FileNotFoundError:
            logger.info("%s not present locally — first install", sanitized_name)
            return Freshness.FIRST_INSTALL

        upstream_epoch = epoch_seconds(upstream_updated_at)
        if upstream_epoch <= local_mtime:
            logger.info("%s is up to date", sanitized_name)
            return Freshness.CURRENT

        logger.info(
            "%s is stale (upstream %d > local %d)",
            sanitized_name,
            upstream_epoch,
            int(local_mtime),
        )
        return Freshness.STALE

    def is_stale(self, sanitized_name: str, upstream_updated_at: datetime) -> bool:
        return self.check(sanitized_name, upstream_updated_at).needs_update
