"""Run outcome models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from debsync.models.release import ResolvedRelease


class Freshness(str, Enum):
    """Result of comparing the upstream asset against the local copy."""

    FIRST_INSTALL = "first_install"
    STALE = "stale"
    CURRENT = "current"

    @property
    def needs_update(self) -> bool:
        return self is not Freshness.CURRENT


class SyncStatus(str, Enum):
    INSTALLED = "installed"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"


class VerifiedArtifact(BaseModel):
    """A downloaded artifact whose signature has already been checked.

    Instances are only ever created after verification succeeded, so
    holding one is proof that ``artifact_path`` is safe to publish.
    """

    model_config = ConfigDict(frozen=True)

    artifact_path: Path
    signature_path: Path
    sha256: str
    size_bytes: int


class SyncReport(BaseModel):
    """What a run did, for the CLI renderer and for callers."""

    model_config = ConfigDict(frozen=True)

    status: SyncStatus
    release: ResolvedRelease | None = None
    freshness: Freshness | None = None
    destination: Path | None = None
    index_path: Path | None = None
    sha256: str = ""
    finished_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def changed(self) -> bool:
        """Whether the repository was modified by this run."""
        return self.status == SyncStatus.INSTALLED
