from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Iterable, List, Tuple

from nuv.common.config import NuvConfig

from .errors import PreflightError

logger = logging.getLogger(__name__)

REQUIRED_EXECUTABLES = ("kubectl",)


def required_executables(config: NuvConfig, devcluster: bool = False) -> Tuple[str, ...]:
    """Binaries a command needs on PATH; creating a dev cluster also needs kind."""
    if devcluster:
        return (config.kubectl_binary, config.kind_binary)
    return (config.kubectl_binary,)


def run_preflight_checks(home_dir: Path, executables: Iterable[str] = REQUIRED_EXECUTABLES) -> None:
    """
    Verify the local environment before deploying.

    Raises:
        PreflightError: Listing every failed check.
    """
    failures: List[str] = []

    if not home_dir.is_dir():
        failures.append(f"home directory {home_dir} does not exist")

    for executable in executables:
        if shutil.which(executable) is None:
            failures.append(f"'{executable}' not found in PATH")

    if failures:
        raise PreflightError("preflight checks failed: " + "; ".join(failures))

    logger.debug("Preflight checks passed")
