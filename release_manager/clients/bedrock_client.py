#!/usr/bin/env python3
from __future__ import annotations

import json
import logging
import math
import random
import time
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, ConnectionError as BotoConnectionError, NoCredentialsError, ReadTimeoutError

from release_manager.clients.llm_errors import LLMError
from release_manager.configs.config import Config

logger = logging.getLogger(__name__)


class BedrockClient:
	"""Anthropic messages API on AWS Bedrock, one system prompt and one user turn."""

	def __init__(self, model_id: Optional[str] = None, temperature: float = 0.2, max_output_tokens: int = 2048, runtime=None) -> None:
		cfg = Config.get_bedrock_config()
		self.region = cfg.get("region_name", Config.AWS_REGION)
		self.model_id = model_id or cfg.get("model_id", Config.BEDROCK_MODEL_ID)
		self.max_output_tokens = int(max_output_tokens)
		self.temperature = float(temperature)
		if runtime is None:
			try:
				runtime = boto3.client("bedrock-runtime", region_name=self.region)
			except BotoCoreError as e:
				raise LLMError(f"Cannot create Bedrock runtime client: {e}", code="UNKNOWN") from e
		self._runtime = runtime
		self._tokens_per_char = float(Config.LLM_TOKENS_PER_CHAR)
		self._hard_total_cap = 100000  # combined prompt+response tokens
		self._global_cap_s = Config.LLM_MAX_RUNTIME_S

	def _estimate_tokens(self, text: str) -> int:
		if not text:
			return 0
		return math.ceil(len(text) / max(1.0, self._tokens_per_char))

	def _invoke(self, system_prompt: str, user_content: str) -> str:
		body = {
			"anthropic_version": "bedrock-2023-05-31",
			"max_tokens": self.max_output_tokens,
			"temperature": self.temperature,
			"system": system_prompt,
			"messages": [
				{"role": "user", "content": [{"type": "text", "text": user_content}]}
			],
		}
		response = self._runtime.invoke_model(
			modelId=self.model_id,
			contentType="application/json",
			accept="application/json",
			body=json.dumps(body).encode("utf-8"),
		)
		payload = response.get("body")
		if hasattr(payload, "read"):
			payload_text = payload.read().decode("utf-8", errors="ignore")
		else:
			payload_text = str(payload)
		try:
			data = json.loads(payload_text)
		except json.JSONDecodeError as e:
			raise LLMError(f"Bedrock returned non-JSON payload: {e}", code="BAD_RESPONSE") from e
		parts = data.get("content") or []
		text = "".join(p.get("text", "") for p in parts if isinstance(p, dict) and p.get("type") == "text")
		return text

	def complete(self, system_prompt: str, user_content: str) -> str:
		start = time.monotonic()
		# Budget guardrails
		tokens_est = self._estimate_tokens(system_prompt) + self._estimate_tokens(user_content) + self.max_output_tokens
		if tokens_est > self._hard_total_cap:
			raise LLMError("Prompt exceeds hard token cap", code="TOO_LARGE")
		# Retries on transient errors
		exc: Optional[Exception] = None
		for attempt in range(3):
			try:
				if (time.monotonic() - start) >= self._global_cap_s:
					raise LLMError("Global timeout exceeded", code="TIMEOUT")
				return self._invoke(system_prompt, user_content)
			except LLMError:
				raise
			except ReadTimeoutError as e:
				exc = e
				code = "TIMEOUT"
			except BotoConnectionError as e:
				exc = e
				code = "NETWORK"
			except NoCredentialsError as e:
				exc = e
				code = "UNAUTHORIZED"
			except ClientError as e:
				exc = e
				err = e.response.get("Error", {}) if hasattr(e, "response") else {}
				status = err.get("Code", "") or err.get("StatusCode", "")
				msg = err.get("Message", "")
				low = (str(status) + " " + str(msg)).lower()
				if "throttl" in low or "429" in low or "rate" in low:
					code = "RATE_LIMIT"
				elif "unauthorized" in low or "403" in low or "401" in low or "accessdenied" in low:
					code = "UNAUTHORIZED"
				else:
					code = "UNKNOWN"
			except BotoCoreError as e:
				exc = e
				code = "UNKNOWN"
			# backoff if transient
			if code in ("TIMEOUT", "NETWORK", "RATE_LIMIT") and attempt < 2:
				backoff = (2 ** attempt) + random.random()
				logger.debug(f"Bedrock {code} on attempt {attempt + 1}, retrying in {backoff:.1f}s")
				time.sleep(min(backoff, 2.5))
				continue
			raise LLMError(f"Bedrock error: {exc}", code=code)
		raise LLMError("Unknown failure", code="UNKNOWN")
