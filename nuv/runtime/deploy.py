"""Deploy, setup and reset sequences for the platform."""

from __future__ import annotations

import logging
import os
from importlib import resources
from pathlib import Path
from typing import Callable, Optional, Sequence

from nuv.common.command_runner import CommandRunner
from nuv.common.config import NuvConfig, get_home_dir

from .errors import DeployError
from .kind import KindProvisioner
from .kubernetes import ClusterHandle, NamespaceManager, NamespaceOutcome, init_clients
from .preflight import required_executables, run_preflight_checks
from .waiters import wait_for_pod_running
from .wskprops import write_wskprops

ApplyStep = Callable[[Path, Sequence[str]], None]
PreflightCheck = Callable[..., None]
ClientFactory = Callable[..., ClusterHandle]


def load_descriptor() -> bytes:
    """Return the deployment descriptor shipped with the package."""
    return resources.files("nuv.runtime").joinpath("embed", "nuvolaris.yml").read_bytes()


def write_descriptor(workdir: Path, filename: str) -> Path:
    """Write the descriptor verbatim into ``workdir`` with owner-only permissions."""
    path = Path(workdir) / filename
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as handle:
        handle.write(load_descriptor())
    path.chmod(0o600)
    return path


class KubectlApplyStep:
    """Hand the descriptor to ``kubectl apply`` in the platform namespace."""

    def __init__(
        self,
        config: NuvConfig,
        command_runner: Optional[CommandRunner] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.command_runner = command_runner or CommandRunner()
        self.logger = logger or logging.getLogger(__name__)

    def __call__(self, descriptor: Path, args: Sequence[str] = ()) -> None:
        self.logger.info("Applying %s to namespace %s", descriptor, self.config.namespace)
        result = self.command_runner.run(
            [
                self.config.kubectl_binary,
                "apply",
                "-f",
                str(descriptor),
                "-n",
                self.config.namespace,
                *args,
            ],
            timeout=self.config.apply_timeout,
        )
        if not result.succeeded():
            raise DeployError(f"kubectl apply failed: {result.describe_failure()}")
        self.logger.info("Successfully applied %s", descriptor)


class DeploymentOrchestrator:
    """Top level command sequences."""

    def __init__(
        self,
        config: Optional[NuvConfig] = None,
        *,
        preflight: PreflightCheck = run_preflight_checks,
        apply_step: Optional[ApplyStep] = None,
        provisioner: Optional[KindProvisioner] = None,
        client_factory: ClientFactory = init_clients,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or NuvConfig()
        self.preflight = preflight
        self.apply_step = apply_step or KubectlApplyStep(self.config)
        self.provisioner = provisioner or KindProvisioner(self.config)
        self.client_factory = client_factory
        self.logger = logger or logging.getLogger(__name__)

    def deploy(
        self,
        args: Sequence[str] = (),
        *,
        no_preflight_checks: bool = False,
        workdir: Optional[Path] = None,
    ) -> Path:
        """
        Write the embedded descriptor and hand it to the apply step.

        Preflight checks run first unless disabled; a failing check raises
        before anything is written.

        Returns:
            Path of the written descriptor.
        """
        if not no_preflight_checks:
            self.preflight(get_home_dir(), executables=required_executables(self.config))

        self.logger.info("Deploying Nuvolaris...")
        descriptor = write_descriptor(workdir or Path.cwd(), self.config.descriptor_filename)
        self.apply_step(descriptor, args)
        return descriptor

    def setup(
        self,
        *,
        devcluster: bool = False,
        wait: bool = True,
        no_preflight_checks: bool = False,
        workdir: Optional[Path] = None,
    ) -> None:
        """
        Provision (optionally), ensure the namespace, deploy and wait for the operator.

        Preflight checks run before the cluster or kubeconfig is touched.
        """
        if not no_preflight_checks:
            self.preflight(get_home_dir(), executables=required_executables(self.config, devcluster))

        with self.client_factory(devcluster, config=self.config, provisioner=self.provisioner) as handle:
            NamespaceManager(handle, self.config, logger=self.logger).create_namespace()
            self.deploy(no_preflight_checks=True, workdir=workdir)

            if wait:
                self.logger.info("waiting for %s pod to be running...", self.config.operator_pod_name)
                wait_for_pod_running(
                    handle,
                    self.config.operator_pod_name,
                    timeout=self.config.timeout_seconds,
                    interval=self.config.poll_interval,
                )
                self.logger.info("✓ Pod %s running", self.config.operator_pod_name)

        write_wskprops(self.config)
        self.logger.info("nuvolaris setup done.")

    def reset(self) -> NamespaceOutcome:
        """Remove the platform namespace and its dependent CRD."""
        with self.client_factory(False, config=self.config, provisioner=self.provisioner) as handle:
            return NamespaceManager(handle, self.config, logger=self.logger).cleanup()
