"""HTTP surface for kube-remediator: health probes and Prometheus metrics."""

from kube_remediator.api.app import create_app

__all__ = ["create_app"]
