from typing import Any
from urllib.parse import urljoin

import requests
from starlette.concurrency import run_in_threadpool

from .errors import AIServiceError
from .provider_registry import ProviderConfig

NO_RESPONSE = "No response generated"


def _upstream_error_detail(exc: requests.RequestException) -> tuple[str, int | None]:
    detail = "Failed to reach OpenAI API."
    response = getattr(exc, "response", None)
    if response is None:
        return f"{detail} {exc}", None
    status_code = getattr(response, "status_code", None)
    if status_code:
        detail = f"{detail} Upstream status {status_code}."
    body = getattr(response, "text", "")
    if body:
        detail = f"{detail} {body[:300]}"
    return detail, status_code


def _extract_content(data: Any) -> str:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices:
        return NO_RESPONSE
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    return content or NO_RESPONSE


async def fetch_chat_completion(
    provider: ProviderConfig,
    model: str,
    messages: list[dict[str, str]],
    timeout_seconds: float,
    temperature: float = 0.7,
    max_tokens: int = 1000,
) -> str:
    url = urljoin(f"{provider.base_url.rstrip('/')}/", "chat/completions")
    payload = {
        "model": model,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    headers = {
        "accept": "application/json",
        "content-type": "application/json",
        "Authorization": f"Bearer {provider.api_key}",
    }

    def _request() -> dict[str, Any]:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout_seconds)
        response.raise_for_status()
        return response.json()

    try:
        data = await run_in_threadpool(_request)
    except requests.RequestException as exc:
        detail, status_code = _upstream_error_detail(exc)
        raise AIServiceError(detail, status_code) from exc
    except ValueError as exc:
        raise AIServiceError("Upstream returned invalid JSON.") from exc
    return _extract_content(data)
