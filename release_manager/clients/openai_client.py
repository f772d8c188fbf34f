#!/usr/bin/env python3
"""OpenAI-compatible chat completions client built on requests."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from release_manager.clients.llm_errors import LLMError
from release_manager.configs.config import Config

logger = logging.getLogger(__name__)


class OpenAIChatClient:
	def __init__(
		self,
		model: str = "gpt-4o-mini",
		temperature: float = 0.2,
		max_tokens: int = 2048,
		api_key: Optional[str] = None,
		base_url: Optional[str] = None,
		timeout_s: Optional[int] = None,
		session: Optional[requests.Session] = None,
	) -> None:
		cfg = Config.get_openai_config()
		self.model = model
		self.temperature = float(temperature)
		self.max_tokens = int(max_tokens)
		self.api_key = api_key or cfg["api_key"]
		self.base_url = (base_url or cfg["base_url"]).rstrip("/")
		self.timeout_s = int(timeout_s or cfg["timeout_s"])
		if not self.api_key:
			raise LLMError("OpenAI API key is required (OPENAI_API_KEY env var)", code="UNAUTHORIZED")
		self.session = session or requests.Session()
		self.session.headers.update({
			"Authorization": f"Bearer {self.api_key}",
			"Content-Type": "application/json",
		})

	def _payload(self, system_prompt: str, user_content: str) -> Dict[str, Any]:
		return {
			"model": self.model,
			"temperature": self.temperature,
			"max_tokens": self.max_tokens,
			"messages": [
				{"role": "system", "content": system_prompt},
				{"role": "user", "content": user_content},
			],
		}

	def complete(self, system_prompt: str, user_content: str) -> str:
		url = f"{self.base_url}/chat/completions"
		try:
			response = self.session.post(url, json=self._payload(system_prompt, user_content), timeout=self.timeout_s)
		except requests.Timeout as e:
			raise LLMError(f"OpenAI request timed out: {e}", code="TIMEOUT") from e
		except requests.RequestException as e:
			raise LLMError(f"OpenAI request failed: {e}", code="NETWORK") from e

		if response.status_code in (401, 403):
			raise LLMError("OpenAI rejected the API key", code="UNAUTHORIZED")
		elif response.status_code == 429:
			raise LLMError("OpenAI rate limit exceeded", code="RATE_LIMIT")
		elif response.status_code != 200:
			raise LLMError(f"OpenAI API error: HTTP {response.status_code}", code="UNKNOWN")

		try:
			data = response.json()
			content = data["choices"][0]["message"]["content"]
		except (ValueError, KeyError, IndexError, TypeError) as e:
			raise LLMError(f"Unexpected OpenAI response shape: {e}", code="BAD_RESPONSE") from e
		logger.debug(f"OpenAI completion received ({len(content or '')} chars)")
		return content or ""
