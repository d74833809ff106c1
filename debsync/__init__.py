"""debsync: mirror a signed upstream release into a local Debian repository.

Pipeline: resolve the latest release asset → compare with the local copy →
download artifact and detached signature under firejail → verify against a
pinned keyring → atomically install with the upstream mtime → regenerate
the ``Packages`` index.
"""

__version__ = "0.1.0"
__description__ = (
    "Fetch, verify and atomically publish signed upstream Debian packages"
)

from debsync.core.orchestrator import SyncOrchestrator
from debsync.cli.app import app as cli

__all__ = ["SyncOrchestrator", "cli", "__version__"]
