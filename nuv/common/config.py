import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def get_home_dir() -> Path:
    """Return the operator's home directory."""
    return Path.home()


def default_kubeconfig_path() -> Path:
    """
    Resolve the kubeconfig file to operate on.

    Honors the first entry of ``KUBECONFIG`` when set, otherwise falls back to
    ``~/.kube/config``.
    """
    env_value = os.environ.get("KUBECONFIG", "")
    for entry in env_value.split(os.pathsep):
        if entry.strip():
            return Path(entry.strip()).expanduser()
    return get_home_dir() / ".kube" / "config"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


class NuvConfig(BaseModel):
    """Settings shared by the cluster lifecycle commands."""

    # Platform identity
    namespace: str = Field(default_factory=lambda: os.environ.get("NUV_NAMESPACE", "nuvolaris"))
    context_substring: str = Field(
        default_factory=lambda: os.environ.get("NUV_CONTEXT", "nuvolaris"),
        description="Substring identifying the platform context in the kubeconfig.",
    )
    crd_name: str = Field(
        default_factory=lambda: os.environ.get("NUV_CRD_NAME", "whisks.nuvolaris.org"),
        description="Custom resource definition removed before the namespace on teardown.",
    )
    operator_pod_name: str = "nuvolaris-operator"

    # Local files
    kubeconfig_path: Path = Field(default_factory=default_kubeconfig_path)
    config_dir: Path = Field(
        default_factory=lambda: Path(os.environ.get("NUV_CONFIG_DIR", str(get_home_dir() / ".nuvolaris"))).expanduser()
    )
    descriptor_filename: str = "nuvolaris.yml"

    # Dev cluster
    cluster_name: str = "nuvolaris"
    kind_binary: str = Field(default_factory=lambda: os.environ.get("KIND", "kind"))
    kubectl_binary: str = Field(default_factory=lambda: os.environ.get("KUBECTL", "kubectl"))
    apihost_port: int = 3233
    kind_timeout: float = 600.0

    # Timeout settings (seconds)
    poll_interval: float = 1.0
    timeout_seconds: float = Field(default_factory=lambda: _env_float("NUV_TIMEOUT", 120.0))
    apply_timeout: float = 120.0

    @field_validator("poll_interval", "timeout_seconds")
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Intervals and timeouts must be positive.")
        return value
