"""Shared scan logic for the polling and watching remediators."""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod

from kube_remediator.k8s.base import ClusterClient
from kube_remediator.models.config import RemediatorConfig
from kube_remediator.models.pod import PodSnapshot
from kube_remediator.observability.logging import get_logger
from kube_remediator.observability.metrics import list_errors_total, scan_duration_seconds, scans_total
from kube_remediator.remediator.executor import RemediationExecutor
from kube_remediator.remediator.policy import Policy


class Remediator(ABC):
    """A driving loop feeding pod snapshots into a Policy.

    Subclasses implement ``run``, which must return once *stop* is set and
    must not raise for failures of the cluster API.
    """

    def __init__(
        self,
        client: ClusterClient,
        policy: Policy,
        config: RemediatorConfig,
        name: str | None = None,
        field_selector: str = "",
    ) -> None:
        self.name = name or policy.name
        self.config = config
        self._client = client
        self._policy = policy
        self._field_selector = field_selector
        self._executor = RemediationExecutor(client, self.name)
        self._log = get_logger(f"remediator.{self.name}")

    @abstractmethod
    async def run(self, stop: asyncio.Event) -> None:
        """Run until *stop* is set."""

    async def candidates(self) -> list[PodSnapshot]:
        """List pods in scope and keep those the policy selects.

        A failed list is logged and yields no candidates.
        """
        try:
            pods = await self._client.list_pods(self.config.namespace, self._field_selector)
        except Exception as exc:
            list_errors_total.labels(remediator=self.name).inc()
            self._log.error("list_pods_failed", namespace=self.config.namespace or "*", error=str(exc))
            return []
        return [pod for pod in pods if self._policy.should_remediate(pod)]

    async def scan(self) -> int:
        """Run one full scan, remediating matches in list order.

        Returns the number of remediation attempts.
        """
        t_start = time.monotonic()
        self._log.info("scan_running")
        pods = await self.candidates()
        for pod in pods:
            await self._executor.remediate(pod)
        scans_total.labels(remediator=self.name).inc()
        scan_duration_seconds.labels(remediator=self.name).observe(time.monotonic() - t_start)
        return len(pods)

    async def remediate_if_necessary(self, pod: PodSnapshot) -> bool:
        if not self._policy.should_remediate(pod):
            return False
        await self._executor.remediate(pod)
        return True
