"""Per-run working area.

Holds the downloaded artifact and signature for exactly one run.  Removal
is guaranteed on every exit path (success, exception, KeyboardInterrupt)
because it is tied to a ``with`` block rather than a signal trap.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


@contextmanager
def working_area(root: Path | None = None) -> Iterator[Path]:
    """Yield a fresh private directory and remove it recursively afterwards.

    Parameters
    ----------
    root:
        Parent directory.  Placing it on the repository's filesystem lets
        the publisher rename without a staging copy.  ``None`` uses the
        system temp directory.
    """
    if root is not None:
        Path(root).mkdir(parents=True, exist_ok=True)
    with tempfile.TemporaryDirectory(prefix="debsync-", dir=root) as tmp:
        path = Path(tmp)
        logger.debug("Working area %s", path)
        yield path
    logger.debug("Working area %s removed", path)
