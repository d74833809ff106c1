"""Verified fetcher — download artifact + signature, then verify.

Both downloads go through the sandboxed runner with
``Accept: application/octet-stream``.  They are independent reads into
distinct files, so they may run on two worker threads; verification waits
for both.  Nothing leaves this module unless the signature validated: on
any failure the downloaded files are deleted before the error propagates.
"""

from __future__ import annotations

import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from debsync.bridge.verifiers import SignatureVerifier
from debsync.config import SyncConfig
from debsync.core.executor import CommandRunner
from debsync.errors import TransportError
from debsync.models.release import ResolvedRelease
from debsync.models.reports import VerifiedArtifact

logger = logging.getLogger(__name__)

_OCTET_STREAM_HEADER = "--header=Accept: application/octet-stream"


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class VerifiedFetcher:
    """Downloads and verifies one release artifact.

    Parameters
    ----------
    config:
        Supplies size ceilings, network timeout and the parallelism switch.
    runner:
        Runner for the downloads (normally sandboxed).
    verifier:
        Backend that checks the detached signature against the keyring.
    """

    def __init__(
        self,
        config: SyncConfig,
        runner: CommandRunner,
        verifier: SignatureVerifier,
    ) -> None:
        self._config = config
        self._runner = runner
        self._verifier = verifier

    def download(self, url: str, destination: Path) -> Path:
        """Fetch *url* into *destination* through the runner."""
        logger.debug("Downloading %s -> %s", url, destination.name)
        self._runner.run(
            "wget",
            [
                "--quiet",
                f"--timeout={self._config.network_timeout_seconds}",
                _OCTET_STREAM_HEADER,
                "--output-document=-",
                url,
            ],
            limit=self._config.artifact_max_bytes,
            output=destination,
        )
        return destination

    def fetch_and_verify(
        self, release: ResolvedRelease, work_dir: Path
    ) -> VerifiedArtifact:
        """Download package and signature into *work_dir* and verify them.

        Raises
        ------
        TransportError
            Either download failed, overflowed, or the package is empty.
        VerificationError
            The signature does not validate against the keyring.
        """
        artifact_path = work_dir / release.sanitized_name
        signature_path = work_dir / f"{release.sanitized_name}{self._config.signature_suffix}"

        try:
            self._download_pair(release, artifact_path, signature_path)
            size = artifact_path.stat().st_size
            if size == 0:
                raise TransportError(f"Downloaded {release.sanitized_name} is empty")
            self._verifier.verify(signature_path, artifact_path)
        except BaseException:
            artifact_path.unlink(missing_ok=True)
            signature_path.unlink(missing_ok=True)
            raise

        return VerifiedArtifact(
            artifact_path=artifact_path,
            signature_path=signature_path,
            sha256=_sha256_file(artifact_path),
            size_bytes=size,
        )

    def _download_pair(
        self, release: ResolvedRelease, artifact_path: Path, signature_path: Path
    ) -> None:
        if not self._config.parallel_downloads:
            self.download(release.package_url, artifact_path)
            self.download(release.signature_url, signature_path)
            return

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="debsync-dl") as pool:
            futures = [
                pool.submit(self.download, release.package_url, artifact_path),
                pool.submit(self.download, release.signature_url, signature_path),
            ]
            # result() re-raises the first download failure
            for future in futures:
                future.result()
