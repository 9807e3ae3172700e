"""
Lightweight execution tracing.

Every workflow decision, submission and text-generation call is wrapped
in a span so a slow or failing collaborator shows up as a structured
latency record next to the regular logs.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager

logger = logging.getLogger("dayoff.trace")


@contextmanager
def trace_span(name: str, **metadata):
    """
    Measure execution duration of an operation.

    Example log:
    [TRACE] apply_decision duration_ms=0.41 status=ok application=L-1001 role=PRINCIPAL

    The span is always logged, including when the body raises, and the
    exception is re-raised untouched.
    """
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except BaseException:
        outcome = "error"
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000

        meta = " ".join(f"{k}={v}" for k, v in metadata.items())
        logger.info("[TRACE] %s duration_ms=%.2f status=%s %s", name, duration_ms, outcome, meta)
