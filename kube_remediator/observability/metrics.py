"""Prometheus collectors.

Every collector is labelled by ``remediator`` so that the crash-loop and
failed-pod remediators can be told apart on one scrape.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

pods_rescheduled_total = Counter(
    "kube_remediator_pods_rescheduled_total",
    "Pod deletions attempted by a remediator (attempts, not confirmed deletions).",
    ["remediator"],
)

delete_errors_total = Counter(
    "kube_remediator_delete_errors_total",
    "Pod deletions that returned an error.",
    ["remediator"],
)

list_errors_total = Counter(
    "kube_remediator_list_errors_total",
    "Pod list calls that failed; the scan is skipped.",
    ["remediator"],
)

watch_restarts_total = Counter(
    "kube_remediator_watch_restarts_total",
    "Pod watch streams that failed or closed and were resubscribed.",
    ["remediator"],
)

scans_total = Counter(
    "kube_remediator_scans_total",
    "Full pod scans run by a remediator.",
    ["remediator"],
)

scan_duration_seconds = Histogram(
    "kube_remediator_scan_duration_seconds",
    "Wall time of one full scan including remediation.",
    ["remediator"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)
