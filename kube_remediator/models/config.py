"""Configuration data structures."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_ANNOTATION = "kube-remediator/CrashLoopBackOffRemediator"


@dataclass(frozen=True)
class RemediatorConfig:
    """Per-remediator settings, read once at construction.

    An empty ``annotation`` disables the opt-in gate and an empty
    ``namespace`` selects every namespace.  ``interval`` is in seconds and
    only used by polling remediators.
    """

    annotation: str = DEFAULT_ANNOTATION
    failure_threshold: int = 5
    namespace: str = ""
    interval: float = 60.0


@dataclass
class KubernetesConfig:
    """Credential resolution for the cluster client."""

    kubeconfig: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), ".kube", "config"))


@dataclass
class MetricsConfig:
    """Metrics and health HTTP endpoint."""

    enabled: bool = True
    port: int = 9090


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"
    format: str = "json"


@dataclass
class AppConfig:
    """Top-level kube-remediator configuration."""

    crash_loop: RemediatorConfig = field(default_factory=RemediatorConfig)
    failed_pod: RemediatorConfig = field(default_factory=RemediatorConfig)
    kubernetes: KubernetesConfig = field(default_factory=KubernetesConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
