"""Pod deletion for remediators.

``RemediationExecutor.remediate`` never raises: a failed delete is logged
and the calling loop carries on.  The next scan or watch update retries
naturally if the pod is still unhealthy.
"""

from __future__ import annotations

from kube_remediator.k8s.base import ClusterClient
from kube_remediator.models.pod import PodSnapshot
from kube_remediator.observability.logging import get_logger
from kube_remediator.observability.metrics import delete_errors_total, pods_rescheduled_total


class RemediationExecutor:
    """Deletes a pod so its owning controller recreates it."""

    def __init__(self, client: ClusterClient, remediator: str) -> None:
        self._client = client
        self._remediator = remediator
        self._log = get_logger("remediator.executor", remediator=remediator)

    async def remediate(self, pod: PodSnapshot) -> None:
        self._log.info("deleting_pod", pod=pod.name, namespace=pod.namespace)
        # Counts attempts, not confirmed deletions.
        pods_rescheduled_total.labels(remediator=self._remediator).inc()
        try:
            await self._client.delete_pod(pod.name, pod.namespace)
        except Exception as exc:
            delete_errors_total.labels(remediator=self._remediator).inc()
            self._log.warning(
                "delete_pod_failed",
                pod=pod.name,
                namespace=pod.namespace,
                error=str(exc),
            )
