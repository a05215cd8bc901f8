"""Watch-driven remediator.

Lifecycle: a startup scan covers pods that failed before the stream
connected, then every update notification from ``ClusterClient.watch_pods``
is run through the policy in delivery order.  Stream failures are logged
and the stream is resubscribed with exponential back-off; each
resubscription rescans so that transitions missed while disconnected are
still seen.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from kube_remediator.k8s.base import ClusterClient
from kube_remediator.models.config import RemediatorConfig
from kube_remediator.models.pod import PodUpdate
from kube_remediator.observability.metrics import watch_restarts_total
from kube_remediator.remediator.base import Remediator
from kube_remediator.remediator.policy import Policy

FAILED_PHASE_SELECTOR = "status.phase=Failed"

_BACKOFF_INITIAL = 1.0
_BACKOFF_MAX = 30.0


class WatchingRemediator(Remediator):
    """Remediates pods as the cluster reports updates to them."""

    def __init__(
        self,
        client: ClusterClient,
        policy: Policy,
        config: RemediatorConfig,
        name: str | None = None,
        field_selector: str = FAILED_PHASE_SELECTOR,
        backoff_initial: float = _BACKOFF_INITIAL,
        backoff_max: float = _BACKOFF_MAX,
    ) -> None:
        super().__init__(client, policy, config, name=name, field_selector=field_selector)
        self._backoff_initial = backoff_initial
        self._backoff_max = backoff_max

    async def run(self, stop: asyncio.Event) -> None:
        self._log.info("remediator_starting", namespace=self.config.namespace or "*")
        backoff = self._backoff_initial

        while not stop.is_set():
            await self.scan()
            if stop.is_set():
                break

            stream = self._client.watch_pods(self.config.namespace, self._field_selector)
            try:
                delivered = await self._consume(stream, stop)
            except Exception as exc:
                delivered = False
                watch_restarts_total.labels(remediator=self.name).inc()
                self._log.error("watch_failed", error=str(exc), retry_in=backoff)
            else:
                if stop.is_set():
                    break
                watch_restarts_total.labels(remediator=self.name).inc()
                self._log.warning("watch_stream_closed", retry_in=backoff)

            if delivered:
                backoff = self._backoff_initial
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(stop.wait(), timeout=backoff)
            backoff = min(backoff * 2, self._backoff_max)

        self._log.info("remediator_stopping", reason="signal")

    async def _consume(self, stream: AsyncIterator[PodUpdate], stop: asyncio.Event) -> bool:
        """Handle updates until *stop* is set or the stream ends.

        Returns True if at least one update was delivered.
        """
        delivered = False
        stop_waiter = asyncio.ensure_future(stop.wait())
        try:
            while True:
                next_update = asyncio.ensure_future(anext(stream))
                await asyncio.wait({next_update, stop_waiter}, return_when=asyncio.FIRST_COMPLETED)
                # stop wins over an update that became ready in the same step
                if stop_waiter.done() or not next_update.done():
                    next_update.cancel()
                    with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                        await next_update
                    return delivered
                try:
                    update = next_update.result()
                except StopAsyncIteration:
                    return delivered
                delivered = True
                await self.handle_update(update)
        finally:
            stop_waiter.cancel()
            await stream.aclose()  # type: ignore[attr-defined]

    async def handle_update(self, update: PodUpdate) -> None:
        """Run the policy over the new snapshot; the previous one is not consulted."""
        await self.remediate_if_necessary(update.current)
