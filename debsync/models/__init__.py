"""debsync data models — all Pydantic v2, all frozen (immutable)."""

from debsync.models.release import (
    ReleaseAsset,
    ReleaseMetadata,
    ResolvedRelease,
    epoch_seconds,
)
from debsync.models.reports import (
    Freshness,
    SyncReport,
    SyncStatus,
    VerifiedArtifact,
)

__all__ = [
    # release
    "ReleaseAsset",
    "ReleaseMetadata",
    "ResolvedRelease",
    "epoch_seconds",
    # reports
    "Freshness",
    "SyncReport",
    "SyncStatus",
    "VerifiedArtifact",
]
