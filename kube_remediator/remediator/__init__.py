"""Remediation engine for kube-remediator.

Submodules
----------
policy   -- CrashLoopPolicy / FailedPhasePolicy: pure pod-snapshot classifiers.
executor -- RemediationExecutor: fire-and-forget pod deletion with metrics.
poller   -- PollingRemediator: periodic full-scan loop.
watcher  -- WatchingRemediator: startup scan followed by a pod watch stream.
"""

from kube_remediator.remediator.base import Remediator
from kube_remediator.remediator.executor import RemediationExecutor
from kube_remediator.remediator.poller import PollingRemediator
from kube_remediator.remediator.policy import CrashLoopPolicy, FailedPhasePolicy, Policy
from kube_remediator.remediator.watcher import WatchingRemediator

__all__ = [
    "CrashLoopPolicy",
    "FailedPhasePolicy",
    "Policy",
    "PollingRemediator",
    "RemediationExecutor",
    "Remediator",
    "WatchingRemediator",
]
