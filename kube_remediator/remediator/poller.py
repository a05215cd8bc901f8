"""Ticker-driven remediator: scan every ``interval`` seconds."""

from __future__ import annotations

import asyncio

from kube_remediator.remediator.base import Remediator


class PollingRemediator(Remediator):
    """Lists every pod in scope on a fixed interval and remediates matches.

    The first scan runs immediately on start.  Ticks missed because a scan
    overran the interval are dropped, not queued.
    """

    async def run(self, stop: asyncio.Event) -> None:
        interval = self.config.interval
        self._log.info("remediator_starting", interval=interval, namespace=self.config.namespace or "*")

        loop = asyncio.get_running_loop()
        next_tick = loop.time() + interval
        await self.scan()

        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=max(next_tick - loop.time(), 0))
            except TimeoutError:
                await self.scan()
                next_tick += interval
                now = loop.time()
                while next_tick <= now:
                    next_tick += interval

        self._log.info("remediator_stopping", reason="signal")
