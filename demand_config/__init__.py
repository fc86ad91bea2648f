"""
demand_config -- single public entrypoint for lifecycle configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains lifecycle
    rules.  It loads the YAML file, validates it and returns the kernel's
    frozen ``LifecyclePolicy``.  The kernel MUST NEVER import this package.

Failure modes:
    - FileNotFoundError: the configuration file does not exist.
    - ValueError: validation failures.

Audit relevance:
    Every successful call emits a ``DEMAND_CONFIG_TRACE`` log record with the
    config id, version and checksum, tying transitions to the rules in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from demand_config.bridges import build_lifecycle_policy
from demand_config.loader import load_lifecycle_config
from demand_config.schema import LifecycleConfig
from demand_kernel.domain.policy import LifecyclePolicy

_logger = logging.getLogger("demand_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "lifecycle.yaml"
CONFIG_PATH_ENV = "DEMAND_CONFIG_PATH"


def resolve_config_path(path: Path | str | None = None) -> Path:
    if path is not None:
        return Path(path)
    from_env = os.environ.get(CONFIG_PATH_ENV)
    if from_env:
        return Path(from_env)
    return DEFAULT_CONFIG_PATH


def get_active_config(path: Path | str | None = None) -> LifecyclePolicy:
    """
    Load, validate and bridge the lifecycle configuration.

    Args:
        path: Override for the YAML file.  Defaults to ``$DEMAND_CONFIG_PATH``
            and then to the packaged defaults.
    """
    config_path = resolve_config_path(path)
    config = load_lifecycle_config(config_path)
    policy = build_lifecycle_policy(config)

    _logger.info(
        "DEMAND_CONFIG_TRACE",
        extra={
            "trace_type": "DEMAND_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
            "override_count": len(config.auto_transition.overrides),
        },
    )
    return policy


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LifecycleConfig",
    "get_active_config",
    "load_lifecycle_config",
    "resolve_config_path",
]
