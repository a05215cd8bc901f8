"""kube-remediator command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kube-remediator`` script).
"""

from kube_remediator.cli.main import cli

__all__ = ["cli"]
