"""Simple span helper for recording node timings."""
from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List


@contextmanager
def span(events: List[Dict[str, Any]], name: str) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and append ``{"span": name, "ms": ...}`` to ``events``.

    The yielded dict is the event itself so callers can attach outcome fields.
    """
    record: Dict[str, Any] = {"span": name}
    start = time.time()
    try:
        yield record
    finally:
        record["ms"] = int((time.time() - start) * 1000)
        events.append(record)


__all__ = ["span"]
