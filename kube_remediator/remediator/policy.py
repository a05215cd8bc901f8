"""Remediation policies.

A policy is a pure function of a PodSnapshot: it never performs I/O and
keeps no history between calls.  Because decisions are point-in-time, a pod
flapping between ``Error`` and ``CrashLoopBackOff`` can be missed on one
scan and picked up on the next.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kube_remediator.models.config import RemediatorConfig
from kube_remediator.models.pod import PodPhase, PodSnapshot

CRASH_LOOP_BACK_OFF = "CrashLoopBackOff"

# Seen in the wild as OutOfCPU, OutOfcpu, Outofmemory, ...
_RECOGNIZED_FAILURE_REASONS = frozenset({"outofcpu", "outofmemory", "unexpectedadmissionerror"})


class Policy(ABC):
    """Decides whether a pod should be deleted and left to its controller."""

    name: str = ""

    @abstractmethod
    def should_remediate(self, pod: PodSnapshot) -> bool:
        """Return True if *pod* qualifies for remediation."""


def _has_owner(pod: PodSnapshot) -> bool:
    # A pod without owner references would not be recreated.
    return len(pod.owner_references) > 0


class CrashLoopPolicy(Policy):
    """Matches opted-in, owned pods with a container crash-looping past the threshold."""

    name = "crash_loop"

    def __init__(self, config: RemediatorConfig) -> None:
        self._annotation = config.annotation
        self._failure_threshold = config.failure_threshold

    def should_remediate(self, pod: PodSnapshot) -> bool:
        return self._opted_in(pod) and _has_owner(pod) and self._is_crash_looping(pod)

    def _opted_in(self, pod: PodSnapshot) -> bool:
        if not self._annotation:
            return True
        return pod.annotations.get(self._annotation) == "true"

    def _is_crash_looping(self, pod: PodSnapshot) -> bool:
        return any(
            status.restart_count > self._failure_threshold and status.waiting_reason == CRASH_LOOP_BACK_OFF
            for status in pod.all_container_statuses
        )


class FailedPhasePolicy(Policy):
    """Matches owned, non-Job pods that failed for an infrastructure reason."""

    name = "failed_pod"

    def should_remediate(self, pod: PodSnapshot) -> bool:
        if pod.phase != PodPhase.FAILED:
            return False
        if pod.status_reason.lower() not in _RECOGNIZED_FAILURE_REASONS:
            return False
        if not _has_owner(pod):
            return False
        # Job pods are cleaned up by the Job controller itself
        return not any(ref.kind == "Job" for ref in pod.owner_references)
