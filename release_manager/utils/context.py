#!/usr/bin/env python3
"""Per-event collaborators, built once and passed explicitly."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, MutableMapping, Optional, Tuple

from release_manager.configs.repo_config import RepoConfig


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventLoggerAdapter(logging.LoggerAdapter):
    """Prefixes messages with `[owner/repo#pr]`; the values also ride along as extras."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        kwargs["extra"] = {**extra, **(kwargs.get("extra") or {})}
        repo = extra.get("repo") or "?"
        pr = extra.get("pr")
        tag = f"[{repo}#{pr}]" if pr else f"[{repo}]"
        return f"{tag} {msg}", kwargs


def event_logger(name: str, repo: str, pr: Optional[int] = None) -> EventLoggerAdapter:
    return EventLoggerAdapter(logging.getLogger(name), {"repo": repo, "pr": pr})


@dataclass
class ReleaseContext:
    config: RepoConfig
    logger: logging.LoggerAdapter
    repo: Any
    classifier: Any
    clock: Callable[[], datetime] = field(default=utc_now)
    repo_name: str = ""

    @property
    def owner(self) -> str:
        return self.repo_name.split("/", 1)[0] if "/" in self.repo_name else ""

    def now(self) -> datetime:
        return self.clock()


__all__ = ["ReleaseContext", "EventLoggerAdapter", "event_logger", "utc_now"]
