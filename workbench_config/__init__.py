"""
workbench_config -- single public entrypoint for workbench configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_active_config()``.  Services receive the resulting
    ``WorkbenchConfig`` by injection and never read files or environment
    variables themselves.

Resolution order:
    1. ``path`` argument, when given.
    2. The file named by the ``WORKBENCH_CONFIG`` environment variable.
    3. The packaged ``defaults/workbench.yaml``.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ConfigurationError`` -- structural or value validation failed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``workbench_config_loaded`` log entry carrying the source path and
    checksum, tying each transition back to the policy that governed it.
"""

from __future__ import annotations

import os
from pathlib import Path

from workbench_config.loader import compute_checksum, load_config, parse_config
from workbench_config.schema import (
    BookingSearchPolicy,
    DatabaseConfig,
    PostingPolicy,
    RfpPolicy,
    ValidationPolicy,
    WorkbenchConfig,
)
from workbench_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "WORKBENCH_CONFIG"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "workbench.yaml"


def get_active_config(path: Path | str | None = None) -> WorkbenchConfig:
    """Load the active workbench configuration."""
    source = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH)
    config = load_config(source)
    logger.info(
        "workbench_config_loaded",
        extra={"config_path": str(source), "checksum": config.checksum},
    )
    return config


__all__ = [
    "get_active_config",
    "load_config",
    "parse_config",
    "compute_checksum",
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "WorkbenchConfig",
    "PostingPolicy",
    "ValidationPolicy",
    "BookingSearchPolicy",
    "RfpPolicy",
    "DatabaseConfig",
]
