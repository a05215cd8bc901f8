"""Cluster client layer for kube-remediator.

Submodules
----------
base   -- ClusterClient: the list/delete/watch capability the remediators consume.
client -- KubernetesClusterClient: kubernetes-asyncio implementation.
"""

from kube_remediator.k8s.base import ClientConfigError, ClusterClient

__all__ = ["ClientConfigError", "ClusterClient"]
