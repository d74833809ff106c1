"""Exception hierarchy for debsync runs.

Every failure mode of a sync run maps onto one of these classes.  None of
them are retried in-process: the orchestrator lets them propagate, the
working area is removed on the way out, and the CLI turns them into a
non-zero exit status.  The next scheduled invocation is the retry.
"""

from __future__ import annotations


class DebsyncError(RuntimeError):
    """Base class for all fatal sync errors."""


class TransportError(DebsyncError):
    """Metadata, artifact, or signature could not be fetched intact."""


class CommandError(TransportError):
    """An external command failed.

    Carries the captured standard error of the failing command so that the
    operator sees exactly that command's diagnostics and nothing else.
    """

    def __init__(
        self,
        message: str,
        *,
        tool: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class SandboxProfileError(CommandError):
    """No restriction profile exists for the requested tool."""


class OutputLimitExceeded(CommandError):
    """A command produced more output than its size ceiling allows."""


class CommandTimeout(CommandError):
    """A command did not finish within its time budget."""


class ResolutionError(DebsyncError):
    """The release has no matching package asset or no signature asset."""


class VerificationError(DebsyncError):
    """The detached signature does not validate against the pinned keyring.

    Treat as a potential security incident, never as a transient glitch.
    """


class PublishError(DebsyncError):
    """The verified artifact could not be installed into the repository."""


class IndexBuildError(PublishError):
    """The package index could not be regenerated."""


class DeploymentConfigError(DebsyncError):
    """The configuration is not safe to run in production."""
