from __future__ import annotations

import io
import json
from unittest.mock import MagicMock, patch

import pytest
import requests
from botocore.exceptions import ClientError, ConnectTimeoutError, NoCredentialsError, NoRegionError, ParamValidationError

from release_manager.clients.bedrock_client import BedrockClient
from release_manager.clients.llm_errors import LLMError
from release_manager.clients.openai_client import OpenAIChatClient
from release_manager.configs.repo_config import AIConfig
from release_manager.utils.classification import ClassificationAdapter
from release_manager.utils.versioning import BumpClass


def _openai(*responses) -> tuple:
    session = MagicMock()
    session.headers = {}
    session.post.side_effect = list(responses)
    client = OpenAIChatClient(model="m", temperature=0.0, max_tokens=64, api_key="sk-test", base_url="https://llm.example.com/v1/", timeout_s=3, session=session)
    return client, session


def _http(status: int, data=None) -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.json.return_value = data
    return r


def test_openai_sends_system_and_user_messages() -> None:
    client, session = _openai(_http(200, {"choices": [{"message": {"content": "## New Features\n- x"}}]}))
    assert client.complete("sys", "user") == "## New Features\n- x"
    url = session.post.call_args.args[0]
    payload = session.post.call_args.kwargs["json"]
    assert url == "https://llm.example.com/v1/chat/completions"
    assert payload["messages"] == [{"role": "system", "content": "sys"}, {"role": "user", "content": "user"}]
    assert (payload["model"], payload["max_tokens"], payload["temperature"]) == ("m", 64, 0.0)
    assert session.headers["Authorization"] == "Bearer sk-test"


@pytest.mark.parametrize(
    "response,code",
    [
        (_http(401), "UNAUTHORIZED"),
        (_http(429), "RATE_LIMIT"),
        (_http(500), "UNKNOWN"),
        (_http(200, {"choices": []}), "BAD_RESPONSE"),
        (requests.Timeout("slow"), "TIMEOUT"),
        (requests.ConnectionError("down"), "NETWORK"),
    ],
)
def test_openai_failures(response, code) -> None:
    client, _ = _openai(response)
    with pytest.raises(LLMError) as exc:
        client.complete("sys", "user")
    assert exc.value.code == code


def test_openai_requires_key(monkeypatch) -> None:
    monkeypatch.setattr("release_manager.configs.config.Config.OPENAI_API_KEY", "")
    with pytest.raises(LLMError) as exc:
        OpenAIChatClient(session=MagicMock())
    assert exc.value.code == "UNAUTHORIZED"


def _bedrock_body(payload) -> dict:
    return {"body": io.BytesIO(json.dumps(payload).encode("utf-8"))}


def test_bedrock_parses_text_blocks() -> None:
    runtime = MagicMock()
    runtime.invoke_model.return_value = _bedrock_body({"content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]})
    client = BedrockClient(model_id="anthropic.test", runtime=runtime)
    assert client.complete("sys", "user") == "ab"
    sent = json.loads(runtime.invoke_model.call_args.kwargs["body"])
    assert sent["system"] == "sys"
    assert sent["messages"][0]["content"][0]["text"] == "user"
    assert runtime.invoke_model.call_args.kwargs["modelId"] == "anthropic.test"


def test_bedrock_retries_throttling_then_succeeds() -> None:
    runtime = MagicMock()
    throttled = ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "InvokeModel")
    runtime.invoke_model.side_effect = [throttled, _bedrock_body({"content": [{"type": "text", "text": "ok"}]})]
    with patch("release_manager.clients.bedrock_client.time.sleep"):
        assert BedrockClient(runtime=runtime).complete("s", "u") == "ok"
    assert runtime.invoke_model.call_count == 2


def test_bedrock_access_denied_is_not_retried() -> None:
    runtime = MagicMock()
    runtime.invoke_model.side_effect = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "InvokeModel")
    with pytest.raises(LLMError) as exc:
        BedrockClient(runtime=runtime).complete("s", "u")
    assert exc.value.code == "UNAUTHORIZED"
    assert runtime.invoke_model.call_count == 1


def test_bedrock_rejects_oversized_prompt() -> None:
    runtime = MagicMock()
    with pytest.raises(LLMError) as exc:
        BedrockClient(runtime=runtime).complete("s", "x" * 1_000_000)
    assert exc.value.code == "TOO_LARGE"
    runtime.invoke_model.assert_not_called()


def test_bedrock_bad_payload() -> None:
    runtime = MagicMock()
    runtime.invoke_model.return_value = {"body": io.BytesIO(b"not json")}
    with pytest.raises(LLMError) as exc:
        BedrockClient(runtime=runtime).complete("s", "u")
    assert exc.value.code == "BAD_RESPONSE"


@pytest.mark.parametrize(
    "error,code,calls",
    [
        (NoCredentialsError(), "UNAUTHORIZED", 1),
        (ParamValidationError(report="bad body"), "UNKNOWN", 1),
        (ConnectTimeoutError(endpoint_url="https://bedrock"), "NETWORK", 3),
    ],
)
def test_bedrock_botocore_errors_become_llm_errors(error, code, calls) -> None:
    runtime = MagicMock()
    runtime.invoke_model.side_effect = error
    with patch("release_manager.clients.bedrock_client.time.sleep"):
        with pytest.raises(LLMError) as exc:
            BedrockClient(runtime=runtime).complete("s", "u")
    assert exc.value.code == code
    assert runtime.invoke_model.call_count == calls


def test_bedrock_client_construction_failure() -> None:
    with patch("release_manager.clients.bedrock_client.boto3.client", side_effect=NoRegionError()):
        with pytest.raises(LLMError):
            BedrockClient()


def test_bedrock_missing_credentials_defaults_bump() -> None:
    runtime = MagicMock()
    runtime.invoke_model.side_effect = NoCredentialsError()
    adapter = ClassificationAdapter(AIConfig(provider="bedrock"), BedrockClient(runtime=runtime))
    rec = adapter.classify_bump("body", "changes")
    assert rec.bump is BumpClass.PATCH
