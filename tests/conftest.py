"""Shared fixtures for kube-remediator tests.

Provides a deterministic in-memory ClusterClient and pod factories so that
policy, loop and lifecycle tests run without a Kubernetes cluster.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator

import pytest
import structlog
from prometheus_client import REGISTRY

from kube_remediator.k8s.base import ClusterClient
from kube_remediator.models.config import RemediatorConfig
from kube_remediator.models.pod import (
    ContainerStatus,
    OwnerReference,
    PodPhase,
    PodSnapshot,
    PodUpdate,
)

# ---------------------------------------------------------------------------
# Pod factories
# ---------------------------------------------------------------------------

ANNOTATION = "kube-remediator/CrashLoopBackOffRemediator"


def make_pod(
    name: str = "my-app-7b4f8c6d-x2kj",
    namespace: str = "default",
    phase: PodPhase = PodPhase.RUNNING,
    status_reason: str = "",
    owner_kinds: tuple[str, ...] = ("ReplicaSet",),
    annotations: dict[str, str] | None = None,
    restart_count: int = 0,
    waiting_reason: str | None = None,
    init_restart_count: int | None = None,
    init_waiting_reason: str | None = None,
    resource_version: str = "1",
) -> PodSnapshot:
    """Create a PodSnapshot with one regular container and sensible defaults."""
    init_statuses: tuple[ContainerStatus, ...] = ()
    if init_restart_count is not None:
        init_statuses = (
            ContainerStatus(name="init", restart_count=init_restart_count, waiting_reason=init_waiting_reason),
        )
    return PodSnapshot(
        name=name,
        namespace=namespace,
        phase=phase,
        status_reason=status_reason,
        owner_references=tuple(OwnerReference(kind=kind, name=f"{name}-owner") for kind in owner_kinds),
        annotations=annotations if annotations is not None else {},
        init_container_statuses=init_statuses,
        container_statuses=(ContainerStatus(name="app", restart_count=restart_count, waiting_reason=waiting_reason),),
        resource_version=resource_version,
    )


def make_crash_looping_pod(name: str = "crashy", restart_count: int = 6, **kwargs) -> PodSnapshot:
    """Create an opted-in, owned pod crash-looping with *restart_count* restarts."""
    defaults = {
        "annotations": {ANNOTATION: "true"},
        "restart_count": restart_count,
        "waiting_reason": "CrashLoopBackOff",
    }
    defaults.update(kwargs)
    return make_pod(name=name, **defaults)


def make_failed_pod(name: str = "evicted", status_reason: str = "OutOfMemory", **kwargs) -> PodSnapshot:
    """Create an owned pod in the Failed phase with *status_reason*."""
    return make_pod(name=name, phase=PodPhase.FAILED, status_reason=status_reason, **kwargs)


def crash_loop_config(**kwargs) -> RemediatorConfig:
    defaults = {"annotation": ANNOTATION, "failure_threshold": 5, "namespace": "", "interval": 60.0}
    defaults.update(kwargs)
    return RemediatorConfig(**defaults)


def metric(name: str, remediator: str) -> float:
    """Current value of a remediator-labelled Prometheus sample (0 if never set)."""
    return REGISTRY.get_sample_value(name, {"remediator": remediator}) or 0.0


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* until it is true or fail the test after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(0.01)


# ---------------------------------------------------------------------------
# Fake cluster client
# ---------------------------------------------------------------------------


class FakeClusterClient(ClusterClient):
    """Deterministic in-memory ClusterClient.

    * ``list_errors`` are raised, in order, by successive list calls.
    * ``delete_errors`` maps ``namespace/name`` to an exception for delete.
    * Watch streams deliver whatever is pushed with ``push_update`` /
      ``push_error``; ``end_stream`` closes the current stream cleanly.
    """

    def __init__(self, pods: list[PodSnapshot] | None = None) -> None:
        self.pods: list[PodSnapshot] = list(pods or [])
        self.list_errors: list[Exception] = []
        self.delete_errors: dict[str, Exception] = {}
        self.list_calls: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.watch_subscriptions = 0
        self.watch_closed = 0
        self._updates: asyncio.Queue[PodUpdate | Exception | None] = asyncio.Queue()

    async def list_pods(self, namespace: str = "", field_selector: str = "") -> list[PodSnapshot]:
        self.list_calls.append((namespace, field_selector))
        if self.list_errors:
            raise self.list_errors.pop(0)
        return [
            pod
            for pod in self.pods
            if (not namespace or pod.namespace == namespace) and _matches_selector(pod, field_selector)
        ]

    async def delete_pod(self, name: str, namespace: str) -> None:
        key = f"{namespace}/{name}"
        self.deleted.append(key)
        if key in self.delete_errors:
            raise self.delete_errors[key]
        # An already-deleted pod is not an error
        self.pods = [pod for pod in self.pods if pod.key != key]

    async def watch_pods(self, namespace: str = "", field_selector: str = "") -> AsyncIterator[PodUpdate]:
        self.watch_subscriptions += 1
        try:
            while True:
                item = await self._updates.get()
                if item is None:
                    return
                if isinstance(item, Exception):
                    raise item
                yield item
        finally:
            self.watch_closed += 1

    def push_update(self, current: PodSnapshot, previous: PodSnapshot | None = None) -> None:
        self._updates.put_nowait(PodUpdate(current=current, previous=previous))

    def push_error(self, exc: Exception) -> None:
        self._updates.put_nowait(exc)

    def end_stream(self) -> None:
        self._updates.put_nowait(None)


def _matches_selector(pod: PodSnapshot, field_selector: str) -> bool:
    if not field_selector:
        return True
    key, _, value = field_selector.partition("=")
    if key == "status.phase":
        return pod.phase.value == value
    raise ValueError(f"unsupported field selector: {field_selector}")


@pytest.fixture
def fake_client() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture(autouse=True)
def _captured_logs() -> Iterator[list[dict[str, object]]]:
    """Keep structlog output out of test streams."""
    with structlog.testing.capture_logs() as logs:
        yield logs
