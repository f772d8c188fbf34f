#!/usr/bin/env python3
from __future__ import annotations


class LLMError(Exception):
	"""Summarization backend failure. `code` is one of TIMEOUT, NETWORK,
	RATE_LIMIT, UNAUTHORIZED, BAD_RESPONSE, TOO_LARGE, UNKNOWN."""

	def __init__(self, message: str, code: str = "UNKNOWN") -> None:
		super().__init__(message)
		self.code = code
