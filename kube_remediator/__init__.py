"""kube-remediator: deletes crash-looping and infrastructure-failed pods so their controllers recreate them."""

__version__ = "0.1.0"
