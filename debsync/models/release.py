"""Release metadata models.

The upstream API document is parsed exactly once, at the boundary, into
these frozen models.  Everything downstream works on typed values rather
than on the raw JSON.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


def epoch_seconds(when: datetime) -> int:
    """Whole epoch seconds for *when*.

    The single rounding rule shared by the publisher (which stamps the
    local mtime) and the freshness gate (which compares against it).
    """
    return int(when.timestamp())


class ReleaseAsset(BaseModel):
    """A single downloadable asset attached to a release.

    ``url`` is the API URL of the asset; requesting it with
    ``Accept: application/octet-stream`` yields the raw bytes.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    url: str
    updated_at: datetime
    browser_download_url: str | None = None
    size: int | None = None

    @field_validator("updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # API timestamps are UTC; a missing offset must not become local time
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ReleaseMetadata(BaseModel):
    """The "latest release" document.  Asset order is the API's own order."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tag_name: str | None = None
    name: str | None = None
    assets: list[ReleaseAsset] = Field(default_factory=list)

    def find_asset(self, name: str) -> ReleaseAsset | None:
        """Return the first asset whose name equals *name* exactly."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    def select_package(self, prefix: str, suffix: str) -> ReleaseAsset | None:
        """Return the first asset named ``<prefix>...<suffix>``, if any."""
        for asset in self.assets:
            if asset.name.startswith(prefix) and asset.name.endswith(suffix):
                return asset
        return None


class ResolvedRelease(BaseModel):
    """The package selected for this run, plus where to fetch it from."""

    model_config = ConfigDict(frozen=True)

    raw_name: str
    sanitized_name: str
    package_url: str
    signature_url: str
    updated_at: datetime
    tag_name: str | None = None

    @property
    def updated_epoch(self) -> int:
        """Upstream update time as whole epoch seconds."""
        return epoch_seconds(self.updated_at)
