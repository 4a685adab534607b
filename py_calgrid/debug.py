"""Debug logging utilities for py-calgrid."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

logger = logging.getLogger("py_calgrid")


def log_layout_summary(
    kind: str, placed: Sequence[Any], requested: int, **details: Any
) -> None:
    """Log a one-line JSON summary of a layout pass.

    Args:
        kind: Layout engine name ("day" or "grid")
        placed: Positioned events produced by the pass
        requested: Number of events handed to the pass
        details: Extra key/value pairs to include
    """
    if not logger.isEnabledFor(logging.DEBUG):
        return

    summary = {
        "type": "layout",
        "kind": kind,
        "requested": requested,
        "placed": len(placed),
        "dropped": requested - len(placed),
    }
    summary.update(details)

    logger.debug(json.dumps(summary, default=str, ensure_ascii=False))


def setup_debug_logging() -> None:
    """Configure debug logging for the py_calgrid logger tree."""
    logger.setLevel(logging.DEBUG)

    # Create console handler with custom formatter
    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)

    formatter = logging.Formatter("%(name)s: %(message)s")
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False
