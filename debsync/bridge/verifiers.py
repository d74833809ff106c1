"""Detached-signature verification against a pinned keyring.

Bridge boundary
---------------
Two backends satisfy the ``SignatureVerifier`` protocol:

1. **GnuPG** (``gpg``): the upstream ships ASCII-armored OpenPGP signatures.
   ``gpg --verify`` runs against a dedicated keyring with ``--always-trust``:
   trust is pinned by keyring membership, decided once at deployment, not by
   a web-of-trust computation.

2. **Ed25519** (``nacl.signing``): raw detached Ed25519 signatures checked
   via libsodium against a keyring file of public keys.  Used for upstreams
   that sign with bare Ed25519 keys, and for hermetic testing.

Both fail closed: an unreadable keyring, a malformed signature, or any
mismatch raises ``VerificationError``.  There is no "unverified" mode.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from debsync.config import SyncConfig
from debsync.core.executor import CommandRunner
from debsync.errors import CommandError, VerificationError

logger = logging.getLogger(__name__)

# gpg prints nothing useful on stdout for --verify; keep the ceiling small.
_GPG_OUTPUT_LIMIT = 64 * 1024

_ED25519_KEY_BYTES = 32
_ED25519_SIGNATURE_BYTES = 64


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SignatureVerifier(Protocol):
    """Protocol for detached-signature verification backends."""

    def verify(self, signature_path: Path, artifact_path: Path) -> None:
        """Return normally iff *signature_path* validates *artifact_path*.

        Raises
        ------
        VerificationError
            On any failure, including an unusable keyring.
        """
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def keyring_fingerprint(keyring_path: Path) -> str:
    """Short fingerprint of the keyring file contents.

    Returns the first 16 hex characters of SHA-256(keyring bytes), or an
    empty string if the keyring cannot be read.  Logged with each
    verification so operators can tell which trust anchor was active.
    """
    try:
        data = Path(keyring_path).read_bytes()
    except OSError:
        return ""
    return hashlib.sha256(data).hexdigest()[:16]


def _decode_key_material(text: str, expected_len: int) -> bytes:
    """Decode hex or base64 *text* into exactly *expected_len* bytes."""
    text = text.strip()
    if len(text) == expected_len * 2:
        try:
            return bytes.fromhex(text)
        except ValueError:
            pass
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("neither hex nor base64") from exc
    if len(raw) != expected_len:
        raise ValueError(f"expected {expected_len} bytes, got {len(raw)}")
    return raw


def _require_keyring(keyring_path: Path) -> None:
    if not keyring_path.is_file():
        raise VerificationError(f"Keyring not found: {keyring_path}")


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class GpgVerifier:
    """Verify OpenPGP detached signatures with ``gpg`` and a fixed keyring.

    Parameters
    ----------
    runner:
        Runner for the ``gpg`` invocation (the quiet local runner: gpg needs
        to read files from the working area).
    keyring_path:
        The pinned keyring.  Never modified.
    gpg:
        The gpg executable.
    """

    def __init__(
        self,
        runner: CommandRunner,
        keyring_path: Path,
        *,
        gpg: str = "gpg",
    ) -> None:
        self._runner = runner
        self._keyring = Path(keyring_path)
        self._gpg = gpg

    def verify(self, signature_path: Path, artifact_path: Path) -> None:
        _require_keyring(self._keyring)
        args = [
            "--no-verbose",
            "--batch",
            "--quiet",
            "--no-tty",
            "--no-default-keyring",
            "--keyring",
            str(self._keyring.resolve()),
            "--always-trust",
            "--verify",
            str(signature_path),
            str(artifact_path),
        ]
        try:
            self._runner.run(self._gpg, args, limit=_GPG_OUTPUT_LIMIT)
        except CommandError as exc:
            raise VerificationError(
                f"Signature check failed for {artifact_path.name}"
                + (f":\n{exc.stderr}" if exc.stderr else "")
            ) from exc
        logger.info(
            "Signature OK for %s (keyring %s)",
            artifact_path.name,
            keyring_fingerprint(self._keyring),
        )


class Ed25519Verifier:
    """Verify raw Ed25519 detached signatures via PyNaCl.

    Keyring format: one public key per line, hex (64 chars) or base64;
    blank lines and ``#`` comments are ignored.  Signature file: one hex or
    base64 encoded 64-byte signature.  Verification passes if any key in the
    keyring validates the artifact bytes.
    """

    def __init__(self, keyring_path: Path) -> None:
        self._keyring = Path(keyring_path)

    def load_keys(self) -> list[bytes]:
        """Parse the keyring file into raw 32-byte public keys."""
        _require_keyring(self._keyring)
        keys: list[bytes] = []
        lines = self._keyring.read_text(encoding="utf-8").splitlines()
        for lineno, line in enumerate(lines, start=1):
            line = line.split("#", 1)[0].strip()
            if not line:
                continue
            try:
                keys.append(_decode_key_material(line, _ED25519_KEY_BYTES))
            except ValueError as exc:
                raise VerificationError(
                    f"Malformed key on line {lineno} of {self._keyring}: {exc}"
                ) from exc
        if not keys:
            raise VerificationError(f"Keyring {self._keyring} holds no keys")
        return keys

    def verify(self, signature_path: Path, artifact_path: Path) -> None:
        import nacl.signing
        from nacl.exceptions import BadSignatureError

        keys = self.load_keys()
        try:
            signature = _decode_key_material(
                signature_path.read_text(encoding="ascii"),
                _ED25519_SIGNATURE_BYTES,
            )
        except (UnicodeDecodeError, ValueError) as exc:
            raise VerificationError(
                f"Malformed signature {signature_path.name}: {exc}"
            ) from exc

        data = artifact_path.read_bytes()
        for key in keys:
            try:
                nacl.signing.VerifyKey(key).verify(data, signature)
            except BadSignatureError:
                continue
            logger.info(
                "Signature OK for %s (keyring %s)",
                artifact_path.name,
                keyring_fingerprint(self._keyring),
            )
            return

        raise VerificationError(
            f"Signature check failed for {artifact_path.name}: "
            f"no key in {self._keyring} validates it"
        )


def build_verifier(config: SyncConfig, runner: CommandRunner) -> SignatureVerifier:
    """Select the verification backend named by ``config.verifier``."""
    if config.verifier == "ed25519":
        return Ed25519Verifier(config.keyring_path)
    return GpgVerifier(runner, config.keyring_path)
