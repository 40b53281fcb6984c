"""Error types raised by the cluster lifecycle commands."""
from __future__ import annotations

CLUSTER_NOT_RUNNING_MESSAGE = (
    "looks like nuvolaris cluster is not running. "
    "Run nuv devcluster create or nuv setup --devcluster"
)


class NuvError(RuntimeError):
    """Base class for every failure reported to the operator."""


class ClusterNotRunningError(NuvError):
    """The kubeconfig is unusable or does not point at the platform cluster."""

    def __init__(self, message: str = CLUSTER_NOT_RUNNING_MESSAGE) -> None:
        super().__init__(message)


class KubeconfigError(NuvError):
    """The kubeconfig file could not be read, parsed or written."""


class ContextNotFoundError(KubeconfigError):
    """No context in the kubeconfig belongs to the platform."""

    def __init__(self, substring: str) -> None:
        super().__init__(f"context {substring} not found")
        self.substring = substring


class ClusterClientError(NuvError):
    """Building an API client from a valid configuration failed."""


class ClusterProvisionError(NuvError):
    """The dev cluster bootstrap tool reported a failure."""


class WaitTimeoutError(NuvError, TimeoutError):
    """A polled condition was not satisfied before its deadline."""

    def __init__(self, description: str, timeout: float) -> None:
        super().__init__(f"timed out after {timeout:g}s waiting for {description}")
        self.description = description
        self.timeout = timeout


class PodStartError(NuvError):
    """A pod reached a phase from which it can no longer become Running."""

    def __init__(self, pod_name: str, phase: str) -> None:
        super().__init__(f"pod {pod_name} cannot start (phase {phase})...aborting")
        self.pod_name = pod_name
        self.phase = phase


class PreflightError(NuvError):
    """A preflight check vetoed the deployment."""


class DeployError(NuvError):
    """Applying the deployment descriptor to the cluster failed."""


class NamespaceTerminatingError(NuvError):
    """The platform namespace is still being deleted by a previous teardown."""

    def __init__(self, namespace: str) -> None:
        super().__init__(
            f"namespace {namespace} is terminating. Wait for nuv reset to finish before running setup again"
        )
        self.namespace = namespace
