"""Deployment guard — enforces hard constraints in production.

Runs once before a sync starts and fails hard (raises
``DeploymentConfigError``) if the configuration would weaken the trust
boundary.  Other code should not scatter ``if is_production`` checks.
"""

from __future__ import annotations

import logging

from debsync.config import SyncConfig
from debsync.errors import DeploymentConfigError

logger = logging.getLogger(__name__)


def enforce_deployment_constraints(config: SyncConfig) -> None:
    """Validate all production-critical configuration constraints.

    Constraints enforced in production
    ----------------------------------
    1. Debug mode must be disabled.
    2. The sandbox must be enabled.
    3. The keyring file must exist.
    4. The release API must be reached over HTTPS.

    All violations are collected and reported together.

    Raises
    ------
    DeploymentConfigError
        If any constraint is violated.
    """
    if not config.is_production:
        return

    violations: list[str] = []

    if config.debug:
        violations.append(
            "debug=True is not allowed in production. Set DEBSYNC_DEBUG=false."
        )

    if not config.sandbox_enabled:
        violations.append(
            "sandbox_enabled=False is not allowed in production. "
            "Set DEBSYNC_SANDBOX_ENABLED=true."
        )

    if not config.keyring_path.is_file():
        violations.append(
            f"Keyring {config.keyring_path} does not exist. Set DEBSYNC_KEYRING_PATH."
        )

    if not config.api_base.startswith("https://"):
        violations.append(
            f"api_base {config.api_base!r} is not HTTPS. Set DEBSYNC_API_BASE."
        )

    if violations:
        msg = "Deployment configuration guard failed.\n" + "\n".join(
            f"  - {v}" for v in violations
        )
        logger.critical(msg)
        raise DeploymentConfigError(msg)

    logger.info("Deployment configuration guard passed.")
