"""Application bootstrap for kube-remediator.

Startup order: logging → config → K8s client → remediators → metrics server.

Every remediator runs as its own asyncio task and all of them share one
stop event.  The remediators are expected to run until a signal sets that
event, so the process exits non-zero once they have all returned.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Iterator
from typing import TYPE_CHECKING

from kube_remediator.config import load_config, load_log_config
from kube_remediator.k8s.base import ClientConfigError, ClusterClient
from kube_remediator.models.config import AppConfig, MetricsConfig
from kube_remediator.observability.logging import get_logger, setup_logging
from kube_remediator.remediator import (
    CrashLoopPolicy,
    FailedPhasePolicy,
    PollingRemediator,
    Remediator,
    WatchingRemediator,
)

if TYPE_CHECKING:
    import uvicorn

_SHUTDOWN_GRACE_SECONDS = 15

_SHUTDOWN_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGHUP,
    signal.SIGQUIT,
    signal.SIGABRT,
)


class RemediatorApp:
    """Runs remediators concurrently under a single stop signal.

    ``wait()`` returns only once every remediator task has exited.  Errors
    escaping a remediator are logged here and never re-raised.
    """

    def __init__(self, remediators: list[Remediator]) -> None:
        self._remediators = remediators
        self._stop = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []
        self._log = get_logger("app")

    @property
    def stop_event(self) -> asyncio.Event:
        return self._stop

    def start(self) -> None:
        for remediator in self._remediators:
            self._log.info("starting remediator", remediator=remediator.name)
            task = asyncio.create_task(remediator.run(self._stop), name=f"remediator-{remediator.name}")
            self._tasks.append(task)

    def request_stop(self) -> None:
        """Ask every remediator to stop.  Safe to call repeatedly."""
        if not self._stop.is_set():
            self._log.info("stop requested")
            self._stop.set()

    async def wait(self) -> None:
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for task, result in zip(self._tasks, results, strict=True):
            if isinstance(result, BaseException):
                self._log.error("remediator exited with an error", task=task.get_name(), error=repr(result))

    async def run(self) -> None:
        self.start()
        await self.wait()

    def status(self) -> dict[str, bool]:
        """Map remediator name to whether its task is currently running."""
        running = {task.get_name(): not task.done() for task in self._tasks}
        return {r.name: running.get(f"remediator-{r.name}", False) for r in self._remediators}


def build_remediators(config: AppConfig, client: ClusterClient) -> list[Remediator]:
    """Crash-loop polling remediator plus failed-pod watching remediator."""
    return [
        PollingRemediator(client, CrashLoopPolicy(config.crash_loop), config.crash_loop),
        WatchingRemediator(client, FailedPhasePolicy(), config.failed_pod),
    ]


# ---------------------------------------------------------------------------
# Metrics / health server
# ---------------------------------------------------------------------------


def _metrics_server_class() -> type[uvicorn.Server]:
    import uvicorn

    class _MetricsServer(uvicorn.Server):
        """uvicorn server that leaves signal handling to the remediator app."""

        def install_signal_handlers(self) -> None:  # uvicorn < 0.29
            pass

        @contextlib.contextmanager
        def capture_signals(self) -> Iterator[None]:  # uvicorn >= 0.29
            yield

    return _MetricsServer


async def _serve_metrics(server: uvicorn.Server) -> None:
    log = get_logger("app")
    try:
        await server.serve()
    except SystemExit:
        # uvicorn exits the process when it cannot bind; the remediators keep running
        log.warning("metrics server failed to start; metrics unavailable")


def _start_metrics_server(
    config: MetricsConfig, remediator_app: RemediatorApp
) -> tuple[uvicorn.Server, asyncio.Task[None]] | None:
    log = get_logger("app")
    if not config.enabled:
        log.info("metrics server disabled")
        return None
    try:
        import uvicorn

        from kube_remediator.api import create_app

        uv_config = uvicorn.Config(
            app=create_app(remediator_app=remediator_app),
            host="0.0.0.0",
            port=config.port,
            log_config=None,  # structlog handles all logging
            access_log=False,
        )
        server = _metrics_server_class()(uv_config)
        task = asyncio.create_task(_serve_metrics(server), name="metrics-server")
    except Exception as exc:
        log.warning("metrics server failed to start; metrics unavailable", error=str(exc))
        return None
    log.info("metrics server started", port=config.port)
    return server, task


async def _stop_metrics_server(handle: tuple[uvicorn.Server, asyncio.Task[None]] | None) -> None:
    if handle is None:
        return
    server, task = handle
    server.should_exit = True
    try:
        await asyncio.wait_for(task, timeout=_SHUTDOWN_GRACE_SECONDS)
    except TimeoutError:
        get_logger("app").warning("metrics server stop timed out", timeout=_SHUTDOWN_GRACE_SECONDS)


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main() -> None:
    """Build the client and remediators, run them until a signal arrives, then exit 1."""
    log_config = load_log_config()
    setup_logging(log_config.level, log_config.format)
    log = get_logger("app")

    from kube_remediator import __version__

    log.info("kube-remediator starting", version=__version__)
    config = load_config()

    try:
        from kube_remediator.k8s.client import KubernetesClusterClient

        client = await KubernetesClusterClient.create(config.kubernetes)
    except ClientConfigError as exc:
        log.critical("fatal startup error", component="k8s_client", error=str(exc))
        raise SystemExit(1) from exc

    remediator_app = RemediatorApp(build_remediators(config, client))
    loop = asyncio.get_running_loop()

    def _on_signal(sig: signal.Signals) -> None:
        log.warning("signal_received", signal=sig.name)
        remediator_app.request_stop()

    for sig in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, _on_signal, sig)

    metrics_server = _start_metrics_server(config.metrics, remediator_app)
    try:
        await remediator_app.run()
    finally:
        await _stop_metrics_server(metrics_server)
        try:
            await client.close()
        except Exception as exc:
            log.debug("k8s client close raised (non-fatal)", error=str(exc))

    log.critical("remediators exited", stop_requested=remediator_app.stop_event.is_set())
    raise SystemExit(1)
