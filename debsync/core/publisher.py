"""Atomic publisher — install the verified artifact and rebuild the index.

The repository directory is shared across runs, so it is only ever mutated
by two atomic renames: the artifact onto ``<repo>/<arch>/<name>`` and the
regenerated index onto ``<repo>/Packages``.  A reader never observes a
missing or partially written file at either path.

The artifact's mtime is pinned to the upstream ``updated_at`` *before* the
rename, so the freshness gate compares against the right instant on the
next run.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

from debsync.config import SyncConfig
from debsync.core.executor import CommandRunner
from debsync.errors import CommandError, IndexBuildError, PublishError
from debsync.models.release import epoch_seconds

logger = logging.getLogger(__name__)


def _replace(source: Path, destination: Path) -> None:
    """Atomically move *source* onto *destination*.

    Across filesystems the file is first copied to a hidden staging file in
    the destination directory, then renamed, so the final path still only
    ever changes by a single ``rename(2)``.
    """
    try:
        os.replace(source, destination)
        return
    except OSError as exc:
        if exc.errno != errno.EXDEV:
            raise

    fd, staging_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", suffix=".partial", dir=destination.parent
    )
    os.close(fd)
    staging = Path(staging_name)
    try:
        shutil.copy2(source, staging)
        os.replace(staging, destination)
    except BaseException:
        staging.unlink(missing_ok=True)
        raise
    source.unlink()


class PackageIndexBuilder:
    """Regenerates the repository's ``Packages`` index.

    Runs ``dpkg-scanpackages -m .`` from the repository root and renames the
    output onto the index path, so the index is replaced atomically.

    Parameters
    ----------
    runner:
        Runner for the index tool (the quiet local runner).
    index_filename:
        Name of the index file in the repository root.
    max_bytes:
        Ceiling on the generated index size.
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        index_filename: str = "Packages",
        max_bytes: int = 64 * 1024 * 1024,
        tool: str = "dpkg-scanpackages",
    ) -> None:
        self._runner = runner
        self._index_filename = index_filename
        self._max_bytes = max_bytes
        self._tool = tool

    def rebuild(self, repo_path: Path) -> Path:
        """Regenerate the index for *repo_path* and return its path."""
        repo_path = Path(repo_path)
        index_path = repo_path / self._index_filename
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._index_filename}.", suffix=".partial", dir=repo_path
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            self._runner.run(
                self._tool,
                ["-m", "."],
                limit=self._max_bytes,
                cwd=repo_path,
                output=tmp_path,
            )
            tmp_path.chmod(0o644)
            os.replace(tmp_path, index_path)
        except CommandError as exc:
            tmp_path.unlink(missing_ok=True)
            raise IndexBuildError(
                f"Index regeneration failed in {repo_path}"
                + (f":\n{exc.stderr}" if exc.stderr else "")
            ) from exc
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise IndexBuildError(f"Could not write {index_path}: {exc}") from exc

        logger.info("Index regenerated at %s", index_path)
        return index_path


class AtomicPublisher:
    """Installs verified artifacts under ``<repo>/<arch>/``.

    Parameters
    ----------
    repo_path:
        Repository root (index location).
    arch:
        Architecture subdirectory name.
    index_builder:
        Regenerates the index after each install.
    """

    def __init__(
        self,
        repo_path: Path,
        arch: str,
        index_builder: PackageIndexBuilder,
    ) -> None:
        self._repo = Path(repo_path)
        self._arch_dir = self._repo / arch
        self._index_builder = index_builder

    @property
    def arch_dir(self) -> Path:
        return self._arch_dir

    def install(
        self, artifact_path: Path, sanitized_name: str, upstream_updated_at: datetime
    ) -> Path:
        """Move the artifact into place with its mtime pinned upstream."""
        destination = self._arch_dir / sanitized_name
        epoch = epoch_seconds(upstream_updated_at)
        try:
            self._arch_dir.mkdir(parents=True, exist_ok=True)
            artifact_path.chmod(0o644)
            os.utime(artifact_path, (epoch, epoch))
            _replace(artifact_path, destination)
        except OSError as exc:
            raise PublishError(
                f"Could not install {sanitized_name} into {self._arch_dir}: {exc}"
            ) from exc
        logger.info("Installed %s", destination)
        return destination

    def publish(
        self, artifact_path: Path, sanitized_name: str, upstream_updated_at: datetime
    ) -> tuple[Path, Path]:
        """Install the artifact and regenerate the index.

        Returns ``(destination, index_path)``.

        Raises
        ------
        PublishError
            The directory or rename failed.
        IndexBuildError
            The index tool failed; the repository is not consistent until
            the next successful run.
        """
        destination = self.install(artifact_path, sanitized_name, upstream_updated_at)
        index_path = self._index_builder.rebuild(self._repo)
        return destination, index_path

    @classmethod
    def from_config(cls, config: SyncConfig, runner: CommandRunner) -> AtomicPublisher:
        builder = PackageIndexBuilder(runner, index_filename=config.index_filename)
        return cls(config.repo_path, config.arch, builder)
