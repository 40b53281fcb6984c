"""Platform config directory and the OpenWhisk CLI properties file."""
from __future__ import annotations

import logging
import os
from pathlib import Path

from nuv.common.config import NuvConfig

logger = logging.getLogger(__name__)

WSKPROPS_FILENAME = ".wskprops"
WSK_CONFIG_ENV = "WSK_CONFIG_FILE"

# Static credentials of the local dev deployment. Not derived from cluster state.
WSK_AUTH = "23bc46b1-71f6-4ed5-8c54-816aa4f8c502:123zO3xZCLrMN6v2BKK1dXYFpXlPkccOFqm12CdAsMgRU4VrNZ9lyGVCGuMDGIwP"
WSK_APIHOST_TEMPLATE = "http://localhost:{port}"


def get_or_create_config_dir(config: NuvConfig) -> Path:
    config.config_dir.mkdir(parents=True, exist_ok=True)
    return config.config_dir


def write_file_to_config_dir(config: NuvConfig, filename: str, content: str) -> Path:
    """Write ``content`` into the platform config directory, readable by the owner only."""
    path = get_or_create_config_dir(config) / filename
    path.write_text(content)
    path.chmod(0o600)
    return path


def write_wskprops(config: NuvConfig) -> Path:
    """Write ``.wskprops`` and point ``WSK_CONFIG_FILE`` at it for child tools."""
    apihost = WSK_APIHOST_TEMPLATE.format(port=config.apihost_port)
    content = f"AUTH={WSK_AUTH}\nAPIHOST={apihost}"
    path = write_file_to_config_dir(config, WSKPROPS_FILENAME, content)
    os.environ[WSK_CONFIG_ENV] = str(path)
    logger.info("✓ OpenWhisk properties written to %s", path)
    return path
