"""Release resolver — find the package asset and its detached signature.

The "latest release" document is fetched through the sandboxed runner and
parsed once into ``ReleaseMetadata``.  Selection is plain predicate
filtering over the typed asset list, in the API's own order, so the result
is stable for a given document.
"""

from __future__ import annotations

import logging
import re

from pydantic import ValidationError

from debsync.config import SyncConfig
from debsync.core.executor import CommandRunner
from debsync.errors import ResolutionError, TransportError
from debsync.models.release import ReleaseMetadata, ResolvedRelease

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_name(name: str) -> str:
    """Strip every character outside ``[A-Za-z0-9._-]`` from *name*.

    Filtering, not validation: an adversarial name degrades to a shorter
    safe string.  Idempotent.

    >>> sanitize_name("../../etc/passwd.deb")
    '....etcpasswd.deb'
    """
    return _UNSAFE_NAME_CHARS.sub("", name)


def parse_release(document: bytes) -> ReleaseMetadata:
    """Parse the raw release JSON, mapping schema errors to ``TransportError``."""
    try:
        return ReleaseMetadata.model_validate_json(document)
    except ValidationError as exc:
        raise TransportError(f"Malformed release metadata: {exc}") from exc


class ReleaseResolver:
    """Resolves the package, sanitized name, and URLs for one run.

    Parameters
    ----------
    config:
        Supplies the release URL, name pattern, and size ceilings.
    runner:
        Runner used for the metadata download (normally sandboxed).
    """

    def __init__(self, config: SyncConfig, runner: CommandRunner) -> None:
        self._config = config
        self._runner = runner

    def fetch_metadata(self) -> ReleaseMetadata:
        """Download and parse the "latest release" document."""
        url = self._config.release_url
        logger.debug("Fetching release metadata from %s", url)
        document = self._runner.run(
            "wget",
            [
                "--quiet",
                f"--timeout={self._config.network_timeout_seconds}",
                "--output-document=-",
                url,
            ],
            limit=self._config.metadata_max_bytes,
        )
        return parse_release(document)

    def resolve(self, metadata: ReleaseMetadata | None = None) -> ResolvedRelease:
        """Select the package asset and its signature.

        Raises
        ------
        ResolutionError
            No asset matches the name pattern, the sanitized name is
            unusable, or there is no ``<name>.asc`` signature asset.
        """
        if metadata is None:
            metadata = self.fetch_metadata()

        prefix = self._config.package_prefix
        suffix = self._config.package_suffix
        package = metadata.select_package(prefix, suffix)
        if package is None:
            raise ResolutionError(
                f"No asset named '{prefix}*{suffix}' in release "
                f"{metadata.tag_name or '(untagged)'}"
            )

        sanitized = sanitize_name(package.name)
        if sanitized in ("", ".", ".."):
            raise ResolutionError(
                f"Asset name {package.name!r} has no usable characters"
            )

        signature_name = package.name + self._config.signature_suffix
        signature = metadata.find_asset(signature_name)
        if signature is None:
            raise ResolutionError(
                f"No signature asset '{signature_name}' — refusing to install "
                "an artifact that cannot be verified"
            )

        limit = self._config.query_max_bytes
        for value in (package.name, package.url, signature.url):
            if len(value.encode("utf-8")) > limit:
                raise TransportError(
                    f"Release metadata field exceeds {limit} bytes"
                )

        if sanitized != package.name:
            logger.warning(
                "Asset name %r sanitized to %r", package.name, sanitized
            )
        logger.info(
            "Resolved %s (release %s, updated %s)",
            sanitized,
            metadata.tag_name or "untagged",
            package.updated_at.isoformat(),
        )
        return ResolvedRelease(
            raw_name=package.name,
            sanitized_name=sanitized,
            package_url=package.url,
            signature_url=signature.url,
            updated_at=package.updated_at,
            tag_name=metadata.tag_name,
        )
