"""Kubeconfig inspection and platform context selection."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import ContextNotFoundError, KubeconfigError

logger = logging.getLogger(__name__)


def load_kubeconfig(path: Path) -> Dict[str, Any]:
    """Read a kubeconfig file into a plain mapping."""
    try:
        with open(path, "r") as handle:
            data = yaml.safe_load(handle)
    except OSError as exc:
        raise KubeconfigError(f"cannot read kubeconfig {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise KubeconfigError(f"kubeconfig {path} is not valid YAML: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise KubeconfigError(f"kubeconfig {path} does not contain a mapping")
    contexts = data.get("contexts") or []
    if not isinstance(contexts, list):
        raise KubeconfigError(f"kubeconfig {path} has a malformed 'contexts' section")
    return data


def context_names(kubeconfig: Dict[str, Any]) -> List[str]:
    names: List[str] = []
    for entry in kubeconfig.get("contexts") or []:
        if isinstance(entry, dict) and entry.get("name"):
            names.append(str(entry["name"]))
    return names


def find_platform_context(kubeconfig: Dict[str, Any], substring: str) -> str:
    """
    Return the context whose name contains ``substring``.

    When several contexts match, the lexically smallest name is selected.

    Raises:
        ContextNotFoundError: When no context matches.
    """
    candidates = sorted(name for name in context_names(kubeconfig) if substring in name)
    if not candidates:
        raise ContextNotFoundError(substring)
    if len(candidates) > 1:
        logger.warning(
            "Several contexts match '%s': %s; using %s",
            substring,
            ", ".join(candidates),
            candidates[0],
        )
    return candidates[0]


def save_kubeconfig(path: Path, kubeconfig: Dict[str, Any]) -> None:
    """Atomically replace ``path`` with ``kubeconfig``, keeping the file mode."""
    path = Path(path)
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = 0o600

    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w") as handle:
            yaml.safe_dump(kubeconfig, handle, default_flow_style=False, sort_keys=False)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_name, mode)
        os.replace(temp_name, path)
    except OSError as exc:
        Path(temp_name).unlink(missing_ok=True)
        raise KubeconfigError(f"cannot write kubeconfig {path}: {exc}") from exc


def assert_platform_context(path: Path, substring: str) -> str:
    """
    Make the platform context current in the kubeconfig at ``path``.

    Only ``current-context`` is changed; every other cluster, user and context
    entry is written back untouched. The file is not rewritten when the
    platform context is already current, nor when no context matches.

    Returns:
        The selected context name.
    """
    kubeconfig = load_kubeconfig(path)
    selected = find_platform_context(kubeconfig, substring)

    if kubeconfig.get("current-context") != selected:
        kubeconfig["current-context"] = selected
        save_kubeconfig(path, kubeconfig)
        logger.debug("Persisted current-context=%s to %s", selected, path)

    logger.info("✓ Current context set to %s", selected)
    return selected
