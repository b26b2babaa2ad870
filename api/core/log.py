"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)`; this only attaches one
stdout handler to the root logger, once.
"""

from __future__ import annotations

import logging
import sys

from . import settings

_CONFIGURED = False


def setup_logging() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return

    level = getattr(logging, settings.log_level(), logging.INFO)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)

    _CONFIGURED = True
