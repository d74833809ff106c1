"""Command execution backends — quiet local runner and firejail sandbox.

Every external tool debsync touches (``wget``, ``gpg``,
``dpkg-scanpackages``) goes through a ``CommandRunner``.  Two backends are
provided:

1. **QuietRunner**: runs the tool directly.  Standard output is captured up
   to a hard size ceiling; standard error is spooled to a temporary file and
   only surfaced, inside the raised ``CommandError``, when the command fails.
   Successful commands are silent.

2. **SandboxedRunner**: the same capture semantics, but the tool runs inside
   ``firejail`` with a per-tool profile (``<profiles_dir>/<tool>.profile``)
   and as an unprivileged user via ``su``.  The profile is resolved before
   anything is spawned; a missing profile is a failure, never a fallback to
   an unrestricted run.

Output beyond the ceiling is never buffered: the process is killed and the
call fails with ``OutputLimitExceeded``.  A truncated body is a transport
failure, not a partial success.
"""

from __future__ import annotations

import io
import logging
import os
import shlex
import signal
import subprocess
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Protocol, runtime_checkable

from debsync.config import SyncConfig
from debsync.errors import (
    CommandError,
    CommandTimeout,
    OutputLimitExceeded,
    SandboxProfileError,
)

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for command execution backends.

    Any object with this ``run`` signature satisfies the protocol; tests
    substitute in-memory fakes.
    """

    def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        limit: int,
        cwd: Path | None = None,
        output: Path | None = None,
    ) -> bytes:
        """Run *tool* with *args* and return its standard output.

        Parameters
        ----------
        tool:
            Executable name or path.  Sandboxed backends select the
            restriction profile from its basename.
        args:
            Arguments passed verbatim (never through a shell unquoted).
        limit:
            Maximum number of standard output bytes accepted.
        cwd:
            Working directory for the command.
        output:
            When given, standard output is streamed into this file and
            ``b""`` is returned.

        Raises
        ------
        CommandError
            On spawn failure, non-zero exit, overflow, or timeout.
        """
        ...


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _copy_bounded(source: IO[bytes], sink: IO[bytes], limit: int) -> bool:
    """Copy *source* into *sink*; return ``False`` once *limit* is exceeded."""
    total = 0
    while True:
        chunk = source.read(_CHUNK_SIZE)
        if not chunk:
            return True
        total += len(chunk)
        if total > limit:
            return False
        sink.write(chunk)


def _read_spool(spool: IO[bytes]) -> str:
    spool.seek(0)
    return spool.read().decode("utf-8", errors="replace").strip()


def _kill_group(proc: subprocess.Popen) -> None:
    """SIGKILL the command and everything it spawned.

    Commands start in their own session, so the process group id equals the
    child's pid and also covers ``su`` -> ``firejail`` -> tool descendants.
    """
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class QuietRunner:
    """Run a command locally, only surfacing its stderr when it fails.

    Parameters
    ----------
    timeout_seconds:
        Wall-clock budget per command.  The command and all of its
        descendants are killed when exceeded.
    spool_dir:
        Directory for the temporary stderr spool file.  ``None`` uses the
        system temp directory.
    """

    def __init__(
        self,
        timeout_seconds: float = 300,
        spool_dir: Path | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._spool_dir = spool_dir

    def build_argv(self, tool: str, args: Sequence[str]) -> list[str]:
        """Return the argv actually executed for *tool*."""
        return [tool, *args]

    def run(
        self,
        tool: str,
        args: Sequence[str],
        *,
        limit: int,
        cwd: Path | None = None,
        output: Path | None = None,
    ) -> bytes:
        argv = self.build_argv(tool, args)
        logger.debug("Running %s", shlex.join(argv))

        with tempfile.TemporaryFile(dir=self._spool_dir) as spool:
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=spool,
                    cwd=cwd,
                    start_new_session=True,
                )
            except OSError as exc:
                raise CommandError(
                    f"{tool}: could not be started: {exc}", tool=tool
                ) from exc

            timed_out = threading.Event()

            def _on_timeout() -> None:
                timed_out.set()
                _kill_group(proc)

            timer = threading.Timer(self._timeout, _on_timeout)
            timer.start()
            try:
                if output is not None:
                    with output.open("wb") as sink:
                        within_limit = _copy_bounded(proc.stdout, sink, limit)
                    captured = b""
                else:
                    buffer = io.BytesIO()
                    within_limit = _copy_bounded(proc.stdout, buffer, limit)
                    captured = buffer.getvalue()
                if not within_limit:
                    _kill_group(proc)
                returncode = proc.wait()
            finally:
                timer.cancel()
                if proc.poll() is None:
                    _kill_group(proc)
                    proc.wait()
                proc.stdout.close()

            stderr = _read_spool(spool)

        if timed_out.is_set():
            raise CommandTimeout(
                f"{tool}: timed out after {self._timeout}s",
                tool=tool,
                returncode=returncode,
                stderr=stderr,
            )
        if not within_limit:
            raise OutputLimitExceeded(
                f"{tool}: output exceeded {limit} bytes",
                tool=tool,
                returncode=returncode,
                stderr=stderr,
            )
        if returncode != 0:
            raise CommandError(
                f"{tool}: exited with status {returncode}",
                tool=tool,
                returncode=returncode,
                stderr=stderr,
            )
        return captured




class SandboxedRunner(QuietRunner):
    """Run a command inside firejail as an unprivileged user.

    Parameters
    ----------
    profiles_dir:
        Directory holding one ``<tool>.profile`` per permitted tool.
    user:
        The unprivileged principal the command runs as.
    firejail_path:
        Path to the firejail binary.
    drop_privileges:
        Wrap the firejail call in ``su``.  Only disable when already running
        as the unprivileged user.
    """

    def __init__(
        self,
        profiles_dir: Path,
        *,
        user: str = "nobody",
        firejail_path: Path = Path("/usr/bin/firejail"),
        drop_privileges: bool = True,
        timeout_seconds: float = 300,
        spool_dir: Path | None = None,
    ) -> None:
        super().__init__(timeout_seconds=timeout_seconds, spool_dir=spool_dir)
        self._profiles_dir = Path(profiles_dir)
        self._user = user
        self._firejail = Path(firejail_path)
        self._drop_privileges = drop_privileges

    def profile_for(self, tool: str) -> Path:
        """Resolve the restriction profile for *tool* from its basename."""
        profile = self._profiles_dir / f"{Path(tool).name}.profile"
        if not profile.is_file():
            raise SandboxProfileError(
                f"No sandbox profile for '{tool}' (expected {profile})",
                tool=tool,
            )
        return profile

    def build_argv(self, tool: str, args: Sequence[str]) -> list[str]:
        profile = self.profile_for(tool)
        firejail_cmd = [
            str(self._firejail),
            "--quiet",
            f"--profile={profile}",
            "--",
            tool,
            *args,
        ]
        if not self._drop_privileges:
            return firejail_cmd
        return ["su", "-s", "/bin/sh", "-l", "-c", shlex.join(firejail_cmd), self._user]


def build_runners(config: SyncConfig) -> tuple[CommandRunner, CommandRunner]:
    """Build ``(sandboxed, quiet)`` runners from *config*.

    With ``sandbox_enabled=False`` the sandboxed slot is filled by a plain
    ``QuietRunner``; the deployment guard forbids that in production.
    """
    quiet = QuietRunner(timeout_seconds=config.command_timeout_seconds)
    if not config.sandbox_enabled:
        logger.warning(
            "Sandbox disabled — downloads will run without firejail or privilege drop."
        )
        return quiet, quiet
    sandboxed = SandboxedRunner(
        config.profiles_dir,
        user=config.sandbox_user,
        firejail_path=config.firejail_path,
        timeout_seconds=config.command_timeout_seconds,
    )
    return sandboxed, quiet
