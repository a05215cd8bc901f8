"""Abstract cluster client consumed by the remediators."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from kube_remediator.models.pod import PodSnapshot, PodUpdate


class ClientConfigError(Exception):
    """Raised when cluster credentials cannot be resolved or the client cannot be built."""


class ClusterClient(ABC):
    """List, delete and watch pods.

    Implementations must be safe to share between remediators running
    concurrently on the same event loop.  An empty ``namespace`` means all
    namespaces.
    """

    @abstractmethod
    async def list_pods(self, namespace: str = "", field_selector: str = "") -> list[PodSnapshot]:
        """Return a point-in-time list of pods."""

    @abstractmethod
    async def delete_pod(self, name: str, namespace: str) -> None:
        """Delete a pod.  A pod that is already gone counts as deleted."""

    @abstractmethod
    def watch_pods(self, namespace: str = "", field_selector: str = "") -> AsyncIterator[PodUpdate]:
        """Stream update notifications for pods.

        Only modifications are yielded; pods that already exist when the
        stream starts, and pods added later, are recorded but not yielded.
        Closing the iterator (``aclose()``) stops delivery.
        """

    async def close(self) -> None:  # noqa: B027
        """Release connection pools.  Default: nothing to release."""
