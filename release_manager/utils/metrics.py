#!/usr/bin/env python3
"""Release pipeline counters and latencies, one JSON object per line.

Records land in `<METRICS_ROOT>/metrics.log`. Labels are small routing
values (route, status, error code, tag); free text is clipped so a stray PR
title cannot bloat the file. `METRICS_ENABLED=0` turns every call into a
no-op.
"""

from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from release_manager.configs.config import Config

LOG_NAME = "metrics.log"
MAX_LABEL_CHARS = 200


def _label(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_LABEL_CHARS:
        return value[:MAX_LABEL_CHARS] + "..."
    return value


class MetricsSink:
    """Append-only JSONL file under a metrics root."""

    def __init__(self, root: str):
        self.path = Path(root) / LOG_NAME

    def emit(self, metric: str, value: Any, labels: Dict[str, Any]) -> Dict[str, Any]:
        record: Dict[str, Any] = {"ts": int(time.time()), "metric": metric, "value": value}
        record.update((k, _label(v)) for k, v in labels.items())
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # single write per record
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, separators=(",", ":")) + "\n")
            fh.flush()
            os.fsync(fh.fileno())
        return record


def _sink() -> Optional[MetricsSink]:
    if not Config.METRICS_ENABLED:
        return None
    return MetricsSink(Config.METRICS_ROOT)


def incr(name: str, value: Any = 1, **labels) -> None:
    sink = _sink()
    if sink is not None:
        sink.emit(name, value, labels)


class Timer:
    """Records `<name>.latency_s` on exit.

    Failed blocks are recorded too, with `ok=false` and the exception's
    `code` when it carries one.
    """

    def __init__(self, name: str, **labels):
        self.name = name
        self.labels = labels
        self.elapsed = 0.0
        self._started = 0.0

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.elapsed = time.perf_counter() - self._started
        labels = dict(self.labels, ok=exc is None)
        code = getattr(exc, "code", None)
        if code:
            labels["code"] = code
        incr(f"{self.name}.latency_s", value=round(self.elapsed, 4), **labels)
        return False
