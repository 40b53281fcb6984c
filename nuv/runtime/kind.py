"""Local dev cluster lifecycle through the kind bootstrap tool."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml

from nuv.common.command_runner import CommandResult, CommandRunner
from nuv.common.config import NuvConfig

from .errors import ClusterProvisionError

KIND_VERBS = ("create", "delete")
KIND_CONFIG_FILENAME = "kind.yaml"
APIHOST_NODE_PORT = 30233


class KindProvisioner:
    """Create or delete the dev cluster and forward raw ``kind`` invocations."""

    def __init__(
        self,
        config: NuvConfig,
        command_runner: Optional[CommandRunner] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.command_runner = command_runner or CommandRunner()
        self.logger = logger or logging.getLogger(__name__)

    def cluster_config(self) -> Dict[str, Any]:
        """kind ``Cluster`` document exposing the API host port on localhost."""
        return {
            "kind": "Cluster",
            "apiVersion": "kind.x-k8s.io/v1alpha4",
            "name": self.config.cluster_name,
            "nodes": [
                {
                    "role": "control-plane",
                    "extraPortMappings": [
                        {
                            "containerPort": APIHOST_NODE_PORT,
                            "hostPort": self.config.apihost_port,
                            "protocol": "TCP",
                        }
                    ],
                }
            ],
        }

    def write_cluster_config(self) -> Path:
        config_dir = self.config.config_dir
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / KIND_CONFIG_FILENAME
        with open(path, "w") as handle:
            yaml.safe_dump(self.cluster_config(), handle, sort_keys=False)
        return path

    def manage_cluster(self, verb: str, args: Sequence[str] = ()) -> CommandResult:
        """
        Run ``kind <verb> cluster`` for the platform cluster.

        Args:
            verb: Either ``create`` or ``delete``.
            args: Extra operator supplied arguments appended verbatim.

        Raises:
            ValueError: On an unsupported verb.
            ClusterProvisionError: When kind is missing, times out or exits non-zero.
        """
        if verb not in KIND_VERBS:
            raise ValueError(f"unsupported dev cluster operation: {verb}")

        command = [self.config.kind_binary, verb, "cluster", "--name", self.config.cluster_name]
        if verb == "create":
            command.extend(["--config", str(self.write_cluster_config())])
        command.extend(args)

        self.logger.info("Running kind %s cluster %s", verb, self.config.cluster_name)
        result = self.command_runner.run(command, timeout=self.config.kind_timeout)
        if not result.succeeded():
            raise ClusterProvisionError(
                f"kind {verb} cluster failed: {result.describe_failure()}"
            )

        self.logger.info("✓ Dev cluster %s %sd", self.config.cluster_name, verb)
        return result

    def create(self, args: Sequence[str] = ()) -> CommandResult:
        return self.manage_cluster("create", args)

    def delete(self, args: Sequence[str] = ()) -> CommandResult:
        return self.manage_cluster("delete", args)

    def passthrough(self, args: Sequence[str]) -> int:
        """Forward ``args`` to kind with the terminal attached and return its exit status."""
        result = self.command_runner.run(
            [self.config.kind_binary, *args],
            capture_output=False,
        )
        if not result.tool_available:
            raise ClusterProvisionError(result.describe_failure())
        return result.return_code or 0
