"""Logging and Prometheus metrics for kube-remediator."""
