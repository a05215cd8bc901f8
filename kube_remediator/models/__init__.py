"""Core data structures for kube-remediator."""

from kube_remediator.models.config import (
    AppConfig,
    KubernetesConfig,
    LogConfig,
    MetricsConfig,
    RemediatorConfig,
)
from kube_remediator.models.pod import (
    ContainerStatus,
    OwnerReference,
    PodPhase,
    PodSnapshot,
    PodUpdate,
)

__all__ = [
    "AppConfig",
    "ContainerStatus",
    "KubernetesConfig",
    "LogConfig",
    "MetricsConfig",
    "OwnerReference",
    "PodPhase",
    "PodSnapshot",
    "PodUpdate",
    "RemediatorConfig",
]
