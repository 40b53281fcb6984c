"""Bounded polling of remote cluster state."""

from __future__ import annotations

import logging
import sys
import time
from typing import TYPE_CHECKING, Callable, Optional

from .errors import PodStartError, WaitTimeoutError

if TYPE_CHECKING:
    from .kubernetes import ClusterHandle

logger = logging.getLogger(__name__)

Condition = Callable[[], bool]

POD_PENDING = "Pending"
POD_RUNNING = "Running"
POD_TERMINAL_PHASES = ("Failed", "Succeeded", "Unknown")


def print_progress_marker() -> None:
    """Write a single progress dot for the operator."""
    sys.stdout.write(".")
    sys.stdout.flush()


def end_progress_line() -> None:
    sys.stdout.write("\n")
    sys.stdout.flush()


def poll_immediate(
    condition: Condition,
    interval: float,
    timeout: float,
    *,
    description: str = "condition",
    progress: Optional[Callable[[], None]] = print_progress_marker,
    progress_end: Optional[Callable[[], None]] = end_progress_line,
    clock: Optional[Callable[[], float]] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> None:
    """
    Evaluate ``condition`` until it returns True.

    The first evaluation happens immediately, later ones at most once per
    ``interval``. An exception raised by the condition propagates at once and
    ends the wait. When progress markers were printed, ``progress_end`` runs
    once the wait is over, whatever its outcome.

    Raises:
        WaitTimeoutError: When ``timeout`` seconds elapse first.
    """
    if interval <= 0:
        raise ValueError("interval must be positive")
    if timeout < 0:
        raise ValueError("timeout must not be negative")
    clock = clock or time.monotonic
    sleep = sleep or time.sleep

    try:
        _poll(condition, interval, timeout, description, progress, clock, sleep)
    finally:
        if progress is not None and progress_end is not None:
            progress_end()


def _poll(
    condition: Condition,
    interval: float,
    timeout: float,
    description: str,
    progress: Optional[Callable[[], None]],
    clock: Callable[[], float],
    sleep: Callable[[float], None],
) -> None:
    deadline = clock() + timeout
    attempt = 0
    while True:
        attempt += 1
        if progress is not None:
            progress()
        logger.debug("Polling %s (attempt %d)", description, attempt)

        if condition():
            return

        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        if clock() >= deadline:
            break

    raise WaitTimeoutError(description, timeout)


def is_pod_running(handle: ClusterHandle, pod_name: str) -> Condition:
    """Condition satisfied once the pod is Running; terminal phases raise PodStartError."""

    def condition() -> bool:
        pod = handle.core_api.read_namespaced_pod(pod_name, handle.namespace, **handle.request_options())
        phase = pod.status.phase if pod.status else None

        if phase == POD_RUNNING:
            return True
        if phase in POD_TERMINAL_PHASES:
            raise PodStartError(pod_name, phase)
        # Pending and unrecognized phases keep waiting
        return False

    return condition


def is_namespace_terminated(handle: ClusterHandle, namespace: str) -> Condition:
    """Condition satisfied once the namespace can no longer be found."""

    def condition() -> bool:
        return handle.read_namespace(namespace) is None

    return condition


def wait_for_pod_running(
    handle: ClusterHandle,
    pod_name: str,
    timeout: float,
    interval: float = 1.0,
    **poll_options,
) -> None:
    poll_immediate(
        is_pod_running(handle, pod_name),
        interval,
        timeout,
        description=f"pod {pod_name} to be running",
        **poll_options,
    )


def wait_for_namespace_terminated(
    handle: ClusterHandle,
    namespace: str,
    timeout: float,
    interval: float = 1.0,
    **poll_options,
) -> None:
    poll_immediate(
        is_namespace_terminated(handle, namespace),
        interval,
        timeout,
        description=f"namespace {namespace} to be terminated",
        **poll_options,
    )
