"""Runtime configuration — env-driven.

Centralized config using pydantic-settings.  Reads from a .env file and
DEBSYNC_* environment variables.  The defaults reproduce the original
deployment: the coreos/rkt amd64 Debian package mirrored into
/usr/local/pkg/rkt.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

KIB = 1024
MIB = 1024 * KIB


class SyncConfig(BaseSettings):
    """Sync configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DEBSYNC_ENVIRONMENT=production
        export DEBSYNC_REPO_PATH=/srv/apt/rkt
        export DEBSYNC_KEYRING_PATH=/etc/debsync/coreos.gpg

    Or via .env file::

        DEBSYNC_OWNER=coreos
        DEBSYNC_PROJECT=rkt
        DEBSYNC_ARCH=amd64
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DEBSYNC_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Upstream release source
    api_base: str = "https://api.github.com"
    owner: str = "coreos"
    project: str = "rkt"
    package_prefix: str = "rkt"
    arch: str = "amd64"
    package_extension: str = ".deb"
    signature_suffix: str = ".asc"

    # Local repository
    repo_path: Path = Path("/usr/local/pkg/rkt")
    index_filename: str = "Packages"

    # Trust anchor
    keyring_path: Path = Path("/etc/debsync/coreos.gpg")
    verifier: Literal["gpg", "ed25519"] = "gpg"

    # Sandbox
    sandbox_enabled: bool = True
    sandbox_user: str = "nobody"
    firejail_path: Path = Path("/usr/bin/firejail")
    profiles_dir: Path = Path("/etc/debsync/firejail")
    work_root: Path | None = None  # None -> <repo_path>/.debsync-work

    # Resource ceilings
    artifact_max_bytes: int = 512 * MIB
    metadata_max_bytes: int = 1 * MIB
    query_max_bytes: int = 10 * KIB
    network_timeout_seconds: int = 60
    command_timeout_seconds: int = 300
    parallel_downloads: bool = True

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    @property
    def release_url(self) -> str:
        """The "latest release" endpoint for the configured project."""
        return f"{self.api_base.rstrip('/')}/repos/{self.owner}/{self.project}/releases/latest"

    @property
    def package_suffix(self) -> str:
        """Asset name suffix selecting the architecture, e.g. ``amd64.deb``."""
        return f"{self.arch}{self.package_extension}"

    @property
    def arch_dir(self) -> Path:
        return self.repo_path / self.arch

    @property
    def index_path(self) -> Path:
        return self.repo_path / self.index_filename

    @property
    def work_dir(self) -> Path:
        """Parent of the per-run working areas.

        Defaults to a hidden directory inside the repository so the final
        rename stays on one filesystem.
        """
        return self.work_root or self.repo_path / ".debsync-work"


# Module-level singleton; import as `from debsync.config import config`
config = SyncConfig()
