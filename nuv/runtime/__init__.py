"""Cluster lifecycle helpers for provisioning and tearing down the platform."""

from .deploy import DeploymentOrchestrator, KubectlApplyStep, write_descriptor
from .errors import (
    ClusterClientError,
    ClusterNotRunningError,
    ClusterProvisionError,
    ContextNotFoundError,
    DeployError,
    KubeconfigError,
    NamespaceTerminatingError,
    NuvError,
    PodStartError,
    PreflightError,
    WaitTimeoutError,
)
from .kind import KindProvisioner
from .kubeconfig import assert_platform_context
from .kubernetes import ClusterHandle, NamespaceManager, NamespaceOutcome, init_clients
from .waiters import poll_immediate, wait_for_namespace_terminated, wait_for_pod_running

__all__ = [
    "DeploymentOrchestrator",
    "KubectlApplyStep",
    "write_descriptor",
    "ClusterClientError",
    "ClusterNotRunningError",
    "ClusterProvisionError",
    "ContextNotFoundError",
    "DeployError",
    "KubeconfigError",
    "NamespaceTerminatingError",
    "NuvError",
    "PodStartError",
    "PreflightError",
    "WaitTimeoutError",
    "KindProvisioner",
    "assert_platform_context",
    "ClusterHandle",
    "NamespaceManager",
    "NamespaceOutcome",
    "init_clients",
    "poll_immediate",
    "wait_for_namespace_terminated",
    "wait_for_pod_running",
]
