"""Tests for the deploy, setup and reset sequences."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock, Mock

import pytest

from nuv.common.command_runner import CommandResult
from nuv.runtime import deploy as deploy_module
from nuv.runtime.deploy import DeploymentOrchestrator, KubectlApplyStep, load_descriptor, write_descriptor
from nuv.runtime.errors import DeployError, PreflightError
from nuv.runtime.kubernetes import NamespaceOutcome


def make_orchestrator(nuv_config, **overrides) -> DeploymentOrchestrator:
    options = {
        "preflight": Mock(),
        "apply_step": Mock(),
        "provisioner": Mock(),
        "client_factory": MagicMock(),
    }
    options.update(overrides)
    return DeploymentOrchestrator(nuv_config, **options)


def test_write_descriptor_is_verbatim_and_owner_only(tmp_path: Path) -> None:
    path = write_descriptor(tmp_path, "nuvolaris.yml")

    assert path == tmp_path / "nuvolaris.yml"
    assert path.read_bytes() == load_descriptor()
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_write_descriptor_tightens_existing_file(tmp_path: Path) -> None:
    existing = tmp_path / "nuvolaris.yml"
    existing.write_text("stale")
    existing.chmod(0o644)

    write_descriptor(tmp_path, "nuvolaris.yml")

    assert existing.read_bytes() == load_descriptor()
    assert stat.S_IMODE(existing.stat().st_mode) == 0o600


def test_embedded_descriptor_declares_operator_pod() -> None:
    assert b"name: nuvolaris-operator" in load_descriptor()


def test_deploy_runs_preflight_then_hands_off(nuv_config, tmp_path: Path) -> None:
    orchestrator = make_orchestrator(nuv_config)

    descriptor = orchestrator.deploy(["--dry-run=client"], workdir=tmp_path)

    orchestrator.preflight.assert_called_once()
    orchestrator.apply_step.assert_called_once_with(descriptor, ["--dry-run=client"])
    assert descriptor == tmp_path / "nuvolaris.yml"


def test_deploy_skips_preflight_when_disabled(nuv_config, tmp_path: Path) -> None:
    orchestrator = make_orchestrator(nuv_config)

    orchestrator.deploy(no_preflight_checks=True, workdir=tmp_path)

    orchestrator.preflight.assert_not_called()
    orchestrator.apply_step.assert_called_once()


def test_failing_preflight_vetoes_deploy(nuv_config, tmp_path: Path) -> None:
    orchestrator = make_orchestrator(nuv_config, preflight=Mock(side_effect=PreflightError("no kubectl")))

    with pytest.raises(PreflightError):
        orchestrator.deploy(workdir=tmp_path)

    orchestrator.apply_step.assert_not_called()
    assert not (tmp_path / "nuvolaris.yml").exists()


def test_setup_creates_namespace_deploys_waits_and_writes_wskprops(nuv_config, tmp_path, monkeypatch) -> None:
    handle = MagicMock()
    factory = MagicMock()
    factory.return_value.__enter__.return_value = handle
    manager_cls = Mock()
    wait = Mock()
    monkeypatch.setattr(deploy_module, "NamespaceManager", manager_cls)
    monkeypatch.setattr(deploy_module, "wait_for_pod_running", wait)
    monkeypatch.setenv("WSK_CONFIG_FILE", "unset")
    orchestrator = make_orchestrator(nuv_config, client_factory=factory)

    orchestrator.setup(devcluster=True, workdir=tmp_path)

    factory.assert_called_once_with(True, config=nuv_config, provisioner=orchestrator.provisioner)
    manager_cls.return_value.create_namespace.assert_called_once_with()
    orchestrator.apply_step.assert_called_once()
    wait.assert_called_once_with(handle, "nuvolaris-operator", timeout=5.0, interval=1.0)
    wskprops = nuv_config.config_dir / ".wskprops"
    assert os.environ["WSK_CONFIG_FILE"] == str(wskprops)
    factory.return_value.__exit__.assert_called_once()


def test_setup_without_wait(nuv_config, tmp_path, monkeypatch) -> None:
    wait = Mock()
    monkeypatch.setattr(deploy_module, "NamespaceManager", Mock())
    monkeypatch.setattr(deploy_module, "wait_for_pod_running", wait)
    monkeypatch.setattr(deploy_module, "write_wskprops", Mock())
    orchestrator = make_orchestrator(nuv_config)

    orchestrator.setup(wait=False, workdir=tmp_path)

    wait.assert_not_called()


def test_setup_runs_preflight_before_touching_the_cluster(nuv_config, tmp_path, monkeypatch) -> None:
    calls = []

    def init_clients(devcluster, **_):
        calls.append(f"init_clients({devcluster})")
        return MagicMock()

    factory = Mock(side_effect=init_clients)
    manager_cls = Mock()
    manager_cls.return_value.create_namespace.side_effect = lambda: calls.append("create_namespace")
    monkeypatch.setattr(deploy_module, "NamespaceManager", manager_cls)
    monkeypatch.setattr(deploy_module, "wait_for_pod_running", Mock())
    monkeypatch.setattr(deploy_module, "write_wskprops", Mock())
    preflight = Mock(side_effect=lambda *args, **kwargs: calls.append("preflight"))
    orchestrator = make_orchestrator(nuv_config, preflight=preflight, client_factory=factory)

    orchestrator.setup(devcluster=True, workdir=tmp_path)

    assert calls == ["preflight", "init_clients(True)", "create_namespace"]
    preflight.assert_called_once()
    assert preflight.call_args.kwargs["executables"] == ("kubectl", "kind")


def test_failing_preflight_vetoes_setup(nuv_config, tmp_path, monkeypatch) -> None:
    manager_cls = Mock()
    monkeypatch.setattr(deploy_module, "NamespaceManager", manager_cls)
    orchestrator = make_orchestrator(nuv_config, preflight=Mock(side_effect=PreflightError("'kind' not found in PATH")))

    with pytest.raises(PreflightError):
        orchestrator.setup(devcluster=True, workdir=tmp_path)

    orchestrator.client_factory.assert_not_called()
    manager_cls.assert_not_called()
    orchestrator.apply_step.assert_not_called()


def test_setup_skips_preflight_when_disabled(nuv_config, tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(deploy_module, "NamespaceManager", Mock())
    monkeypatch.setattr(deploy_module, "wait_for_pod_running", Mock())
    monkeypatch.setattr(deploy_module, "write_wskprops", Mock())
    orchestrator = make_orchestrator(nuv_config)

    orchestrator.setup(no_preflight_checks=True, workdir=tmp_path)

    orchestrator.preflight.assert_not_called()
    orchestrator.apply_step.assert_called_once()


def test_reset_runs_namespace_cleanup(nuv_config, monkeypatch) -> None:
    manager_cls = Mock()
    manager_cls.return_value.cleanup.return_value = NamespaceOutcome.NOT_FOUND
    monkeypatch.setattr(deploy_module, "NamespaceManager", manager_cls)
    orchestrator = make_orchestrator(nuv_config)

    assert orchestrator.reset() == NamespaceOutcome.NOT_FOUND

    orchestrator.client_factory.assert_called_once_with(False, config=nuv_config, provisioner=orchestrator.provisioner)


def test_kubectl_apply_step_command(nuv_config, tmp_path: Path) -> None:
    runner = Mock()
    runner.run.return_value = CommandResult(
        command=["kubectl"], return_code=0, stdout="", stderr="", duration=0.1, timed_out=False, tool_available=True
    )

    KubectlApplyStep(nuv_config, runner)(tmp_path / "nuvolaris.yml", ["--server-side"])

    assert runner.run.call_args.args[0] == [
        "kubectl",
        "apply",
        "-f",
        str(tmp_path / "nuvolaris.yml"),
        "-n",
        "nuvolaris",
        "--server-side",
    ]


def test_kubectl_apply_step_failure(nuv_config, tmp_path: Path) -> None:
    runner = Mock()
    runner.run.return_value = CommandResult(
        command=["kubectl"],
        return_code=1,
        stdout="",
        stderr="error: the server doesn't have a resource type",
        duration=0.1,
        timed_out=False,
        tool_available=True,
    )

    with pytest.raises(DeployError, match="resource type"):
        KubectlApplyStep(nuv_config, runner)(tmp_path / "nuvolaris.yml")
