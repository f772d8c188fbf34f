import os
from typing import Dict, Any

class Config:
	"""Process-level settings for the release manager.

	Repository-specific behaviour (branches, templates, AI knobs) lives in the
	repository configuration document, see `configs.repo_config`.
	"""

	# GitHub REST Configuration
	GITHUB_TOKEN = os.getenv("GITHUB_TOKEN") or os.getenv("GITHUB_PAT")
	GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip('/')
	HTTP_TIMEOUT_S = int(os.getenv("HTTP_TIMEOUT_S", "30"))
	USER_AGENT = os.getenv("RELEASE_MANAGER_USER_AGENT", "release-manager/0.1")

	# Repository configuration document
	REPO_CONFIG_PATH = os.getenv("REPO_CONFIG_PATH", ".github/release-manager.json")
	LOCAL_CONFIG_PATH = os.getenv("RELEASE_MANAGER_CONFIG", "")

	# OpenAI-compatible chat completions
	OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
	OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip('/')

	# AWS Bedrock Configuration
	AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
	BEDROCK_MODEL_ID = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-sonnet-20240229-v1:0")
	LLM_TOKENS_PER_CHAR = float(os.getenv("LLM_TOKENS_PER_CHAR", "4.0"))
	LLM_MAX_RUNTIME_S = int(os.getenv("LLM_MAX_RUNTIME_S", "120"))

	# Diff sampling for prompts
	DIFF_SAMPLE_CHARS = int(os.getenv("DIFF_SAMPLE_CHARS", "2000"))
	MAX_PROMPT_BODY_CHARS = int(os.getenv("MAX_PROMPT_BODY_CHARS", "12000"))

	# Comments and releases
	MAX_GH_COMMENT_CHARS = int(os.getenv("MAX_GH_COMMENT_CHARS", "65000"))
	RELEASE_BODY_MAX_CHARS = int(os.getenv("RELEASE_BODY_MAX_CHARS", "125000"))

	# Observability
	METRICS_ROOT = os.getenv("METRICS_ROOT", ".cache/release_manager/metrics")
	METRICS_ENABLED = bool(int(os.getenv("METRICS_ENABLED", "1")))

	@classmethod
	def get_github_config(cls) -> Dict[str, Any]:
		"""Get GitHub configuration for the REST client."""
		return {
			"base_url": cls.GITHUB_API_URL,
			"token": cls.GITHUB_TOKEN,
			"timeout_s": cls.HTTP_TIMEOUT_S,
		}

	@classmethod
	def get_openai_config(cls) -> Dict[str, Any]:
		return {
			"api_key": cls.OPENAI_API_KEY,
			"base_url": cls.OPENAI_BASE_URL,
			"timeout_s": cls.HTTP_TIMEOUT_S,
		}

	@classmethod
	def get_bedrock_config(cls) -> Dict[str, Any]:
		"""Get Bedrock configuration."""
		return {
			"region_name": cls.AWS_REGION,
			"model_id": cls.BEDROCK_MODEL_ID
		}
