"""Shared fixtures for the cluster lifecycle tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from nuv.common.config import NuvConfig
from nuv.runtime.kubernetes import ClusterHandle


class FakeClock:
    """Monotonic clock that only advances when sleep is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def not_found() -> ApiException:
    return ApiException(status=404, reason="Not Found")


def server_error() -> ApiException:
    return ApiException(status=500, reason="Internal Server Error")


def active_namespace(name: str = "nuvolaris") -> client.V1Namespace:
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(name=name),
        status=client.V1NamespaceStatus(phase="Active"),
    )


def terminating_namespace(name: str = "nuvolaris") -> client.V1Namespace:
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(name=name, deletion_timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc)),
        status=client.V1NamespaceStatus(phase="Terminating"),
    )


def conflict() -> ApiException:
    return ApiException(status=409, reason="Conflict")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def nuv_config(tmp_path: Path) -> NuvConfig:
    return NuvConfig(
        namespace="nuvolaris",
        context_substring="nuvolaris",
        crd_name="whisks.nuvolaris.org",
        kubeconfig_path=tmp_path / "kubeconfig",
        config_dir=tmp_path / ".nuvolaris",
        kind_binary="kind",
        kubectl_binary="kubectl",
        poll_interval=1.0,
        timeout_seconds=5.0,
    )


@pytest.fixture
def handle() -> ClusterHandle:
    return ClusterHandle(
        core_api=Mock(),
        extensions_api=Mock(),
        namespace="nuvolaris",
        context="kind-nuvolaris",
        configuration=Mock(),
    )
