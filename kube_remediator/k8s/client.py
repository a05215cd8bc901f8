"""kubernetes-asyncio implementation of the cluster client.

Credential resolution follows the usual controller convention: when
``KUBERNETES_SERVICE_HOST`` is present the in-cluster service account is
used, otherwise the kubeconfig file from ``KubernetesConfig`` is loaded.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from typing import Any

from kubernetes_asyncio import client, config, watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.rest import ApiException  # type: ignore[import-untyped]

from kube_remediator.k8s.base import ClientConfigError, ClusterClient
from kube_remediator.models.config import KubernetesConfig
from kube_remediator.models.pod import PodSnapshot, PodUpdate
from kube_remediator.observability.logging import get_logger

_log = get_logger("k8s.client")

# Server-side watch timeout; the stream is re-opened from the last seen
# resourceVersion when it expires.
_WATCH_TIMEOUT_SECONDS = 300

_HTTP_NOT_FOUND = 404
_HTTP_GONE = 410


class WatchError(Exception):
    """Raised when the API server sends an ERROR event on a watch stream."""


class KubernetesClusterClient(ClusterClient):
    """ClusterClient backed by a kubernetes-asyncio ``CoreV1Api``."""

    def __init__(self, core_v1: Any, api_client: Any = None) -> None:
        self._v1 = core_v1
        self._api_client = api_client

    @classmethod
    async def create(cls, settings: KubernetesConfig) -> KubernetesClusterClient:
        """Resolve credentials and build the client.

        Raises ClientConfigError when neither in-cluster credentials nor the
        kubeconfig file can be loaded.
        """
        configuration = client.Configuration()
        try:
            if os.environ.get("KUBERNETES_SERVICE_HOST"):
                # load_incluster_config() is synchronous in kubernetes-asyncio
                config.load_incluster_config(client_configuration=configuration)
                _log.info("k8s client configured from in-cluster service account")
            else:
                await config.load_kube_config(
                    config_file=settings.kubeconfig,
                    client_configuration=configuration,
                )
                _log.info("k8s client configured from kubeconfig", kubeconfig=settings.kubeconfig)
            api_client = client.ApiClient(configuration=configuration)
        except Exception as exc:
            raise ClientConfigError(f"cannot configure kubernetes client: {exc}") from exc
        return cls(client.CoreV1Api(api_client), api_client)

    # ------------------------------------------------------------------
    # List / delete
    # ------------------------------------------------------------------

    async def list_pods(self, namespace: str = "", field_selector: str = "") -> list[PodSnapshot]:
        pod_list = await self._list(namespace, field_selector)
        return [PodSnapshot.from_k8s(pod) for pod in pod_list.items or []]

    async def delete_pod(self, name: str, namespace: str) -> None:
        try:
            await self._v1.delete_namespaced_pod(name, namespace)
        except ApiException as exc:
            if exc.status != _HTTP_NOT_FOUND:
                raise
            _log.debug("pod already deleted", pod=name, namespace=namespace)

    async def _list(self, namespace: str, field_selector: str) -> Any:
        kwargs: dict[str, Any] = {}
        if field_selector:
            kwargs["field_selector"] = field_selector
        if namespace:
            return await self._v1.list_namespaced_pod(namespace, **kwargs)
        return await self._v1.list_pod_for_all_namespaces(**kwargs)

    # ------------------------------------------------------------------
    # Watch
    # ------------------------------------------------------------------

    async def watch_pods(self, namespace: str = "", field_selector: str = "") -> AsyncIterator[PodUpdate]:
        """Yield a PodUpdate for every modification seen after the initial list.

        With a field selector a pod entering the selection arrives as ADDED;
        that is a transition of the underlying pod and is yielded too.  An
        expired resourceVersion (410 Gone) triggers a relist, and pods that
        changed while the stream was down are yielded from the relist.
        Pods already present in the seeding list are never yielded, so a pod
        that changes between a caller's own earlier list and this one is
        only picked up by that caller's next full scan.
        """
        filtered = bool(field_selector)
        known: dict[str, PodSnapshot] = {}
        version = await self._seed(known, namespace, field_selector)

        if namespace:
            func, args = self._v1.list_namespaced_pod, (namespace,)
        else:
            func, args = self._v1.list_pod_for_all_namespaces, ()
        kwargs: dict[str, Any] = {"timeout_seconds": _WATCH_TIMEOUT_SECONDS}
        if field_selector:
            kwargs["field_selector"] = field_selector

        while True:
            try:
                async with watch.Watch() as stream:
                    async for event in stream.stream(func, *args, resource_version=version, **kwargs):
                        event_type = event["type"]
                        if event_type == "ERROR":
                            raw = event.get("raw_object") or {}
                            if raw.get("code") == _HTTP_GONE:
                                raise ApiException(status=_HTTP_GONE, reason=raw.get("message", "Gone"))
                            raise WatchError(str(raw.get("message", raw)))

                        snapshot = PodSnapshot.from_k8s(event["object"])
                        version = snapshot.resource_version or version
                        if event_type == "BOOKMARK":
                            continue
                        if event_type == "DELETED":
                            known.pop(snapshot.key, None)
                            continue

                        previous = known.get(snapshot.key)
                        known[snapshot.key] = snapshot
                        if event_type == "MODIFIED" or (event_type == "ADDED" and filtered):
                            yield PodUpdate(current=snapshot, previous=previous)
            except ApiException as exc:
                if exc.status != _HTTP_GONE:
                    raise
                _log.info("watch resource version expired; relisting", namespace=namespace or "*")
                stale = dict(known)
                known.clear()
                version = await self._seed(known, namespace, field_selector)
                for snapshot in known.values():
                    update = _relist_update(stale.get(snapshot.key), snapshot, filtered)
                    if update is not None:
                        yield update

    async def _seed(self, known: dict[str, PodSnapshot], namespace: str, field_selector: str) -> str:
        pod_list = await self._list(namespace, field_selector)
        for pod in pod_list.items or []:
            snapshot = PodSnapshot.from_k8s(pod)
            known[snapshot.key] = snapshot
        return pod_list.metadata.resource_version or ""

    async def close(self) -> None:
        if self._api_client is not None:
            await self._api_client.close()


def _relist_update(previous: PodSnapshot | None, current: PodSnapshot, filtered: bool) -> PodUpdate | None:
    """Decide whether a pod found by a relist changed while the stream was down."""
    if previous is None:
        return PodUpdate(current=current) if filtered else None
    if previous.resource_version and previous.resource_version == current.resource_version:
        return None
    return PodUpdate(current=current, previous=previous)
