import base64
import json
import logging
import re
from typing import Any, Dict, List, Union

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from rs_credit.core.config import settings
from rs_credit.core.exceptions import AIKillSwitchError, ExternalServiceError, QuotaExceededError
from rs_credit.core.prompts import PAYSLIP_EXTRACTION_SYSTEM, PAYSLIP_EXTRACTION_USER

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"

# Outermost JSON array or object in a model reply
_JSON_BLOCK = re.compile(r"(\[.*\]|\{.*\})", re.DOTALL)


class TransientAIError(Exception):
    """Network or 5xx failure worth retrying."""


def _content_part(data: bytes, mime_type: str) -> Dict[str, Any]:
    encoded = base64.b64encode(data).decode("ascii")
    url = f"data:{mime_type};base64,{encoded}"
    if mime_type == "application/pdf":
        return {"type": "file", "file": {"filename": "payslip.pdf", "file_data": url}}
    return {"type": "image_url", "image_url": {"url": url}}


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(TransientAIError),
    reraise=True,
)
def call_openrouter(messages: list, temperature: float = settings.ai.temperature) -> str:
    """
    Call OpenRouter API with the specified messages.

    Args:
        messages: List of message dictionaries with 'role' and 'content'
        temperature: Temperature for the model

    Returns:
        str: The AI response content

    Raises:
        ExternalServiceError: missing credentials, client errors, or retries exhausted.
        QuotaExceededError: the provider answered 429.
    """
    api_key = settings.ai.openrouter_api_key
    if not api_key:
        raise ExternalServiceError("OPENROUTER_API_KEY is not configured.", error_code="AI_NOT_CONFIGURED")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }

    payload = {
        "model": settings.ai.model_name,
        "messages": messages,
        "temperature": temperature,
    }

    try:
        response = requests.post(
            OPENROUTER_URL,
            json=payload,
            headers=headers,
            timeout=settings.ai.request_timeout_seconds,
        )
    except requests.exceptions.RequestException as e:
        logger.error(f"AI service unreachable: {e}")
        raise TransientAIError(str(e)) from e

    if response.status_code == 429:
        raise QuotaExceededError("AI provider rejected the request: quota exceeded.")
    if response.status_code in (401, 403):
        raise ExternalServiceError("Invalid AI provider credentials.", error_code="AI_INVALID_CREDENTIALS")
    if response.status_code >= 500:
        raise TransientAIError(f"AI service returned {response.status_code}")
    if response.status_code >= 400:
        raise ExternalServiceError(f"AI service returned error: {response.status_code}")

    try:
        return response.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ExternalServiceError("Invalid response from AI service.") from e


def parse_json_reply(content: str) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    match = _JSON_BLOCK.search(content or "")
    if not match:
        raise ExternalServiceError("AI reply did not contain JSON.", error_code="AI_INVALID_RESPONSE")
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ExternalServiceError("AI reply contained malformed JSON.", error_code="AI_INVALID_RESPONSE") from e


def extract_payslip(data: bytes, mime_type: str) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """
    Default extraction function: bytes + mime type -> raw payslip fields.

    A multi-page PDF may yield a list of payslips.
    """
    if settings.ai.kill_switch:
        raise AIKillSwitchError()

    messages = [
        {"role": "system", "content": PAYSLIP_EXTRACTION_SYSTEM},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": PAYSLIP_EXTRACTION_USER},
                _content_part(data, mime_type),
            ],
        },
    ]
    try:
        content = call_openrouter(messages)
    except TransientAIError as e:
        raise ExternalServiceError(f"AI service unavailable: {e}") from e
    return parse_json_reply(content)
