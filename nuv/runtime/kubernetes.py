"""Kubernetes API wiring and platform namespace lifecycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from kubernetes import client
from kubernetes import config as kube_config
from kubernetes.client.rest import ApiException

from nuv.common.config import NuvConfig

from .errors import ClusterClientError, ClusterNotRunningError, KubeconfigError, NamespaceTerminatingError
from .kind import KindProvisioner
from .kubeconfig import assert_platform_context
from .waiters import wait_for_namespace_terminated

logger = logging.getLogger(__name__)

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409
NAMESPACE_TERMINATING = "Terminating"


def is_not_found(exc: ApiException) -> bool:
    return exc.status == HTTP_NOT_FOUND


def is_terminating(namespace: Any) -> bool:
    """True when the namespace has been marked for deletion and is draining."""
    metadata = getattr(namespace, "metadata", None)
    if metadata is not None and getattr(metadata, "deletion_timestamp", None) is not None:
        return True
    status = getattr(namespace, "status", None)
    return getattr(status, "phase", None) == NAMESPACE_TERMINATING


@dataclass
class ClusterHandle:
    """Live API clients bound to the platform namespace and context.

    Built once per command by :func:`init_clients`; every cluster operation
    borrows it and none may be used after :meth:`close`.
    """

    core_api: Any
    extensions_api: Any
    namespace: str
    context: str
    configuration: Any
    api_client: Optional[Any] = None
    request_timeout: Optional[float] = None

    def request_options(self) -> Dict[str, Any]:
        if self.request_timeout is None:
            return {}
        return {"_request_timeout": self.request_timeout}

    def read_namespace(self, name: Optional[str] = None) -> Optional[Any]:
        """
        Fetch a namespace, defaulting to the platform one.

        Returns None when the API answers 404; every other API error propagates.
        """
        try:
            return self.core_api.read_namespace(name or self.namespace, **self.request_options())
        except ApiException as exc:
            if is_not_found(exc):
                return None
            raise

    def close(self) -> None:
        if self.api_client is not None:
            self.api_client.close()
            self.api_client = None

    def __enter__(self) -> "ClusterHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_configuration(kubeconfig_path: Path, context: Optional[str] = None) -> client.Configuration:
    """
    Load a client configuration from the kubeconfig file.

    Raises:
        ClusterNotRunningError: When the file is missing, malformed or unusable.
    """
    configuration = client.Configuration()
    try:
        kube_config.load_kube_config(
            config_file=str(kubeconfig_path),
            context=context,
            client_configuration=configuration,
            persist_config=False,
        )
    except (kube_config.ConfigException, OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        logger.debug("Failed to load kubeconfig %s: %s", kubeconfig_path, exc)
        raise ClusterNotRunningError() from exc
    return configuration


def init_clients(
    create_dev_cluster: bool = False,
    *,
    config: Optional[NuvConfig] = None,
    provisioner: Optional[KindProvisioner] = None,
) -> ClusterHandle:
    """
    Build the cluster handle for the platform.

    Optionally creates the dev cluster first, then switches the kubeconfig to
    the platform context before any API call is made.

    Raises:
        ClusterProvisionError: When the dev cluster cannot be created.
        ClusterNotRunningError: When the kubeconfig is unusable or has no platform context.
        ClusterClientError: When an API client cannot be constructed.
    """
    config = config or NuvConfig()

    if create_dev_cluster:
        logger.info("Starting devcluster...")
        (provisioner or KindProvisioner(config)).create()

    kubeconfig_path = config.kubeconfig_path
    build_configuration(kubeconfig_path)

    try:
        context = assert_platform_context(kubeconfig_path, config.context_substring)
    except KubeconfigError as exc:
        logger.debug("Context resolution failed: %s", exc)
        raise ClusterNotRunningError() from exc

    configuration = build_configuration(kubeconfig_path, context=context)
    api_client = client.ApiClient(configuration)

    try:
        core_api = client.CoreV1Api(api_client)
    except Exception as exc:
        api_client.close()
        raise ClusterClientError(f"failed to create kubernetes client: {exc}") from exc

    try:
        extensions_api = client.ApiextensionsV1Api(api_client)
    except Exception as exc:
        api_client.close()
        raise ClusterClientError(f"failed to create apiextensions client: {exc}") from exc

    return ClusterHandle(
        core_api=core_api,
        extensions_api=extensions_api,
        namespace=config.namespace,
        context=context,
        configuration=configuration,
        api_client=api_client,
    )


class NamespaceOutcome(str, Enum):
    CREATED = "created"
    EXISTS = "exists"
    DELETED = "deleted"
    NOT_FOUND = "not_found"


class NamespaceManager:
    """Create and tear down the platform namespace."""

    def __init__(
        self,
        handle: ClusterHandle,
        config: Optional[NuvConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.handle = handle
        self.config = config or NuvConfig(namespace=handle.namespace)
        self.logger = logger or logging.getLogger(__name__)

    @property
    def namespace(self) -> str:
        return self.handle.namespace

    def get_namespace(self) -> Optional[Any]:
        """Return the platform namespace, or None when it does not exist."""
        return self.handle.read_namespace()

    def create_namespace(self) -> NamespaceOutcome:
        """
        Create the platform namespace unless it already exists.

        Raises:
            NamespaceTerminatingError: When a previous teardown is still draining it.
        """
        existing = self.get_namespace()
        if existing is not None:
            if is_terminating(existing):
                raise NamespaceTerminatingError(self.namespace)
            self.logger.info("namespace %s already exists...skipping", self.namespace)
            return NamespaceOutcome.EXISTS

        body = client.V1Namespace(metadata=client.V1ObjectMeta(name=self.namespace))
        try:
            self.handle.core_api.create_namespace(body, **self.handle.request_options())
        except ApiException:
            self.logger.error("failed creation of namespace %s", self.namespace)
            raise

        self.logger.info("✓ Namespace %s created", self.namespace)
        return NamespaceOutcome.CREATED

    def cleanup(self) -> NamespaceOutcome:
        """
        Tear down the platform namespace.

        The dependent CRD is deleted before the namespace so that its finalizers
        cannot keep the namespace in Terminating forever. Blocks until the
        namespace is gone. A namespace already terminating is only waited on.

        Raises:
            ApiException: When the CRD or namespace delete fails.
            WaitTimeoutError: When the namespace outlives the configured timeout.
        """
        existing = self.get_namespace()
        if existing is None:
            self.logger.info("%s namespace not found. Nothing to do.", self.namespace)
            return NamespaceOutcome.NOT_FOUND

        if is_terminating(existing):
            self.logger.info("%s namespace is already terminating", self.namespace)
        else:
            self._delete_dependent_crd()
            self._delete_namespace()

        self.logger.info("waiting for %s namespace to be terminated...a little patience please", self.namespace)
        wait_for_namespace_terminated(
            self.handle,
            self.namespace,
            timeout=self.config.timeout_seconds,
            interval=self.config.poll_interval,
        )
        self.logger.info("%s setup cleanup done.", self.namespace)
        return NamespaceOutcome.DELETED

    def _delete_namespace(self) -> None:
        try:
            self.handle.core_api.delete_namespace(self.namespace, **self.handle.request_options())
        except ApiException as exc:
            if is_not_found(exc):
                self.logger.debug("Namespace %s vanished before delete", self.namespace)
            elif exc.status == HTTP_CONFLICT:
                self.logger.info("%s namespace deletion already in progress", self.namespace)
            else:
                raise

    def _delete_dependent_crd(self) -> None:
        crd_name = self.config.crd_name
        try:
            self.handle.extensions_api.delete_custom_resource_definition(
                crd_name, **self.handle.request_options()
            )
        except ApiException as exc:
            if not is_not_found(exc):
                raise
            self.logger.info("CRD %s already removed", crd_name)
            return
        self.logger.info("✓ CRD %s deleted", crd_name)
