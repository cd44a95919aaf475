from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from langchain_aws import ChatBedrock

from natureup.core.config import AWS_REGION, BEDROCK_MAX_TOKENS, BEDROCK_MODEL_ID, BEDROCK_TEMPERATURE
from natureup.core.errors import ConfigurationError, MalformedReplyError, ProviderError


def get_bedrock_client() -> ChatBedrock:
    # Fail before any network call when credentials are absent.
    if _missing_aws_credentials():
        raise ConfigurationError(
            "AWS credentials are not configured (set AWS_ACCESS_KEY_ID or AWS_PROFILE)"
        )
    return ChatBedrock(
        model_id=BEDROCK_MODEL_ID,
        region_name=AWS_REGION,
        model_kwargs={
            "temperature": BEDROCK_TEMPERATURE,
            "max_tokens": BEDROCK_MAX_TOKENS,
        },
    )


def _missing_aws_credentials() -> bool:
    return not (os.getenv("AWS_ACCESS_KEY_ID") or os.getenv("AWS_PROFILE") or os.getenv("AWS_SESSION_TOKEN"))


def parse_json_reply(text: str) -> Dict[str, Any]:
    """Decode a model reply into a JSON object, tolerating text around it."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if not 0 <= start < end:
            raise MalformedReplyError("Model reply is not JSON")
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as ex:
            raise MalformedReplyError(f"Model reply is not JSON: {ex}") from ex
    if not isinstance(data, dict):
        raise MalformedReplyError("Model reply is not a JSON object")
    return data


def call_llm_json(messages: List[Dict[str, str]], llm: Optional[ChatBedrock] = None) -> Dict[str, Any]:
    client = llm or get_bedrock_client()
    try:
        resp = client.invoke(messages)
    except Exception as ex:  # noqa: BLE001 - botocore/langchain raise many transport types
        raise ProviderError(f"Bedrock call failed: {ex}") from ex
    content = resp.content if hasattr(resp, "content") else str(resp)
    if isinstance(content, list):
        content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    if not content:
        raise MalformedReplyError("Model returned no content")
    return parse_json_reply(content)
