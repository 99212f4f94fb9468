# util/timing.py
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
import logging


@contextmanager
def timed(
    logger: logging.Logger, name: str, slow_ms: Optional[int] = None, **kv: Any
) -> Iterator[Dict[str, Any]]:
    """
    Usage:
      with timed(logger, "match.search", pills=3) as fields:
          ...
          fields["resumes"] = len(rows)
    Emits one line on exit: "<name>.done ms=<int> key=val ...", at WARNING
    when it took longer than `slow_ms`, INFO otherwise.
    """
    fields: Dict[str, Any] = dict(kv)
    t0 = time.perf_counter()
    try:
        yield fields
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        suffix = "".join(f" {k}={v}" for k, v in fields.items())
        level = logging.WARNING if slow_ms is not None and dt_ms > slow_ms else logging.INFO
        logger.log(level, "%s.done ms=%d%s", name, dt_ms, suffix)
