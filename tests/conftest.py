"""Shared test fixtures for debsync."""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import nacl.signing
import pytest

from debsync.config import SyncConfig
from debsync.core.orchestrator import SyncOrchestrator
from debsync.errors import CommandError, OutputLimitExceeded

UPSTREAM_UPDATED_AT = "2024-01-01T00:00:00Z"
UPSTREAM_EPOCH = int(datetime(2024, 1, 1, tzinfo=timezone.utc).timestamp())
PACKAGE_NAME = "proj-1.2.3-amd64.deb"
PACKAGE_URL = "https://api.example.test/repos/example/proj/releases/assets/101"
SIGNATURE_URL = "https://api.example.test/repos/example/proj/releases/assets/102"
PACKAGE_BYTES = b"!<arch>\ndebian-binary   fake package payload\n"


# ---------------------------------------------------------------------------
# Fake command runner
# ---------------------------------------------------------------------------


class FakeRunner:
    """In-memory ``CommandRunner``.

    ``wget`` calls are answered from ``responses`` keyed by URL (the last
    argument); other tools by tool name.  ``dpkg-scanpackages`` lists the
    ``.deb`` files under its working directory.
    """

    def __init__(self, responses: dict[str, bytes] | None = None) -> None:
        self.responses: dict[str, bytes] = dict(responses or {})
        self.failures: dict[str, CommandError] = {}
        self.calls: list[tuple[str, list[str]]] = []

    def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        limit: int,
        cwd: Path | None = None,
        output: Path | None = None,
    ) -> bytes:
        args = list(args)
        self.calls.append((tool, args))
        key = args[-1] if tool == "wget" else tool
        if key in self.failures:
            raise self.failures[key]

        if tool == "dpkg-scanpackages":
            data = self._scan(cwd)
        elif key in self.responses:
            data = self.responses[key]
        else:
            raise CommandError(f"{tool}: exited with status 8", tool=tool,
                               returncode=8, stderr=f"404 Not Found: {key}")

        if len(data) > limit:
            raise OutputLimitExceeded(f"{tool}: output exceeded {limit} bytes", tool=tool)
        if output is not None:
            output.write_bytes(data)
            return b""
        return data

    @staticmethod
    def _scan(cwd: Path | None) -> bytes:
        root = Path(cwd or ".")
        entries = [
            f"Package: {p.stem}\nFilename: ./{p.relative_to(root).as_posix()}\n"
            for p in sorted(root.rglob("*.deb"))
        ]
        return "\n".join(entries).encode("utf-8")

    def tools_called(self) -> list[str]:
        return [tool for tool, _ in self.calls]

    def urls_fetched(self) -> list[str]:
        return [args[-1] for tool, args in self.calls if tool == "wget"]


# ---------------------------------------------------------------------------
# Keys and configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def signing_key() -> nacl.signing.SigningKey:
    """A fresh Ed25519 key pair standing in for the upstream release key."""
    return nacl.signing.SigningKey.generate()


@pytest.fixture
def keyring(tmp_path: Path, signing_key: nacl.signing.SigningKey) -> Path:
    """A pinned keyring file holding the upstream public key."""
    path = tmp_path / "trusted.keys"
    path.write_text(
        "# upstream release key\n" + signing_key.verify_key.encode().hex() + "\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sign(signing_key: nacl.signing.SigningKey) -> Callable[[bytes], bytes]:
    """Produce a hex detached signature file body for some bytes."""

    def _sign(data: bytes) -> bytes:
        return signing_key.sign(data).signature.hex().encode("ascii")

    return _sign


@pytest.fixture
def config(tmp_path: Path, keyring: Path) -> SyncConfig:
    """A development config pointing at temp directories and the Ed25519 keyring."""
    return SyncConfig(
        environment="development",
        api_base="https://api.example.test",
        owner="example",
        project="proj",
        package_prefix="proj",
        arch="amd64",
        repo_path=tmp_path / "repo",
        keyring_path=keyring,
        verifier="ed25519",
        sandbox_enabled=False,
        work_root=tmp_path / "work",
        parallel_downloads=False,
    )


@pytest.fixture
def repo(config: SyncConfig) -> Path:
    return config.repo_path


# ---------------------------------------------------------------------------
# Release document factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_asset() -> Callable[..., dict[str, Any]]:
    """Factory fixture: one asset record as the release API returns it."""

    def _factory(
        name: str,
        url: str = "https://api.example.test/assets/0",
        updated_at: str = UPSTREAM_UPDATED_AT,
        **overrides: Any,
    ) -> dict[str, Any]:
        asset: dict[str, Any] = {
            "name": name,
            "url": url,
            "updated_at": updated_at,
            "browser_download_url": f"https://example.test/download/{name}",
            "size": 1234,
            "content_type": "application/octet-stream",
        }
        asset.update(overrides)
        return asset

    return _factory


@pytest.fixture
def make_release_json() -> Callable[..., bytes]:
    """Factory fixture: serialize a release document around some assets."""

    def _factory(assets: list[dict[str, Any]], tag_name: str = "v1.2.3") -> bytes:
        return json.dumps(
            {"tag_name": tag_name, "name": tag_name, "draft": False, "assets": assets}
        ).encode("utf-8")

    return _factory


@pytest.fixture
def release_json(
    make_asset: Callable[..., dict[str, Any]],
    make_release_json: Callable[..., bytes],
) -> bytes:
    """The standard scenario: a package and its signature, plus noise assets."""
    return make_release_json([
        make_asset("proj-1.2.3-linux-amd64.tar.gz", url="https://api.example.test/assets/100"),
        make_asset(PACKAGE_NAME, url=PACKAGE_URL),
        make_asset(PACKAGE_NAME + ".asc", url=SIGNATURE_URL),
        make_asset("proj-1.2.3-arm64.deb", url="https://api.example.test/assets/103"),
    ])


@pytest.fixture
def upstream(
    config: SyncConfig, release_json: bytes, sign: Callable[[bytes], bytes]
) -> FakeRunner:
    """A fake upstream serving the release document, package and valid signature."""
    return FakeRunner({
        config.release_url: release_json,
        PACKAGE_URL: PACKAGE_BYTES,
        SIGNATURE_URL: sign(PACKAGE_BYTES),
    })


@pytest.fixture
def orchestrator(config: SyncConfig, upstream: FakeRunner) -> SyncOrchestrator:
    return SyncOrchestrator(config, sandbox_runner=upstream, local_runner=upstream)


def snapshot_tree(root: Path) -> dict[str, tuple[bytes, int]]:
    """Map every file under *root* to (content, mtime) for before/after checks."""
    if not root.exists():
        return {}
    return {
        p.relative_to(root).as_posix(): (p.read_bytes(), int(p.stat().st_mtime))
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }
