"""Entry point for `python -m kube_remediator`.

Usage:
    python -m kube_remediator
    kube-remediator run
"""

from __future__ import annotations

import asyncio

from kube_remediator.app import main

asyncio.run(main())
