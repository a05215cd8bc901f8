"""Pod snapshot data structures.

A PodSnapshot is the only view of a pod the remediation policies ever see.
It is built once from a Kubernetes API object and never mutated afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any


class PodPhase(StrEnum):
    """Pod lifecycle phase as reported by the control plane."""

    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> PodPhase:
        try:
            return cls(value or "")
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class OwnerReference:
    """Back-link to the controller that would recreate the pod."""

    kind: str
    name: str


@dataclass(frozen=True)
class ContainerStatus:
    """Restart counter and current waiting reason of one container."""

    name: str
    restart_count: int = 0
    waiting_reason: str | None = None


@dataclass(frozen=True)
class PodSnapshot:
    """Immutable view of one pod at observation time."""

    name: str
    namespace: str
    phase: PodPhase = PodPhase.UNKNOWN
    status_reason: str = ""
    owner_references: tuple[OwnerReference, ...] = ()
    annotations: Mapping[str, str] = field(default_factory=dict, hash=False)
    init_container_statuses: tuple[ContainerStatus, ...] = ()
    container_statuses: tuple[ContainerStatus, ...] = ()
    resource_version: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "annotations", MappingProxyType(dict(self.annotations)))

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def all_container_statuses(self) -> tuple[ContainerStatus, ...]:
        """Init container statuses followed by regular container statuses."""
        return self.init_container_statuses + self.container_statuses

    @classmethod
    def from_k8s(cls, pod: Any) -> PodSnapshot:
        """Build a snapshot from a kubernetes-asyncio ``V1Pod``.

        Missing sub-objects (no status yet, no owner references, no
        annotations) degrade to empty values rather than raising.
        """
        metadata = pod.metadata
        status = pod.status
        return cls(
            name=metadata.name or "",
            namespace=metadata.namespace or "",
            phase=PodPhase.parse(status.phase if status else None),
            status_reason=(status.reason if status else None) or "",
            owner_references=tuple(
                OwnerReference(kind=ref.kind or "", name=ref.name or "")
                for ref in (metadata.owner_references or [])
            ),
            annotations=dict(metadata.annotations or {}),
            init_container_statuses=_container_statuses(status.init_container_statuses if status else None),
            container_statuses=_container_statuses(status.container_statuses if status else None),
            resource_version=metadata.resource_version or "",
        )


@dataclass(frozen=True)
class PodUpdate:
    """Change-stream notification for a pod that was modified.

    ``previous`` is None when the stream has not seen the pod before.
    Policies only ever read ``current``.
    """

    current: PodSnapshot
    previous: PodSnapshot | None = None


def _container_statuses(statuses: list[Any] | None) -> tuple[ContainerStatus, ...]:
    result = []
    for status in statuses or []:
        state = status.state
        waiting = state.waiting if state is not None else None
        result.append(
            ContainerStatus(
                name=status.name or "",
                restart_count=status.restart_count or 0,
                waiting_reason=waiting.reason if waiting is not None else None,
            )
        )
    return tuple(result)
