#!/usr/bin/env python3
"""Semantic version parsing and bump policy."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


_LEADING_DIGITS = re.compile(r"^(\d+)")
_PREFIX = re.compile(r"^[^\d]*")


class BumpClass(str, Enum):
	MAJOR = "MAJOR"
	MINOR = "MINOR"
	PATCH = "PATCH"

	@property
	def rank(self) -> int:
		return {"PATCH": 0, "MINOR": 1, "MAJOR": 2}[self.value]

	@classmethod
	def parse(cls, text: Optional[str], *, strict: bool = False) -> Optional["BumpClass"]:
		"""Case-insensitive lookup; unknown input falls back to PATCH unless strict."""
		key = (text or "").strip().upper()
		if key in cls.__members__:
			return cls[key]
		return None if strict else cls.PATCH

	@staticmethod
	def highest(*bumps: Optional["BumpClass"]) -> "BumpClass":
		present = [b for b in bumps if b is not None]
		if not present:
			return BumpClass.PATCH
		return max(present, key=lambda b: b.rank)


@dataclass(frozen=True)
class Version:
	major: int = 0
	minor: int = 0
	patch: int = 0

	def __post_init__(self) -> None:
		if min(self.major, self.minor, self.patch) < 0:
			raise ValueError(f"Version components must be non-negative: {self.major}.{self.minor}.{self.patch}")

	def __str__(self) -> str:
		return f"{self.major}.{self.minor}.{self.patch}"

	def with_prefix(self, prefix: str = "v") -> str:
		return f"{prefix or ''}{self}"

	def bump(self, bump: BumpClass) -> "Version":
		if bump is BumpClass.MAJOR:
			return Version(self.major + 1, 0, 0)
		if bump is BumpClass.MINOR:
			return Version(self.major, self.minor + 1, 0)
		return Version(self.major, self.minor, self.patch + 1)


def _component(raw: str) -> int:
	m = _LEADING_DIGITS.match(raw.strip())
	return int(m.group(1)) if m else 0


def parse_version(text: Optional[str]) -> Version:
	"""Parse a free-form tag such as `v1.2`, `release-3.0.1` or `2`.

	A leading non-digit prefix is stripped; missing or non-numeric components
	default to 0.
	"""
	if not text:
		return Version()
	stripped = _PREFIX.sub("", text.strip())
	parts = stripped.split(".") if stripped else []
	values = [_component(p) for p in parts[:3]]
	values += [0] * (3 - len(values))
	return Version(*values)


def next_version(current: Version, bump: BumpClass) -> Version:
	return current.bump(bump)


__all__ = ["BumpClass", "Version", "parse_version", "next_version"]
