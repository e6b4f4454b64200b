"""Sends synthesized prompts to the hosted text-generation service."""

import logging
import os
import random
import time
from typing import Dict, Optional

import requests

from generation_errors import UpstreamGenerationError
from question_prompts import SYSTEM_INSTRUCTION


logger = logging.getLogger(__name__)

OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "gpt-4-turbo"
DEFAULT_OPENROUTER_MODEL = "openai/gpt-4-turbo"
PROVIDERS = {"openai", "openrouter"}

SAMPLING_PARAMETERS = {
    "temperature": 0.9,
    "max_tokens": 3000,
    "top_p": 1,
    "frequency_penalty": 0.3,
    "presence_penalty": 0.2,
}

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_MAX_SECONDS = 10.0
BACKOFF_JITTER_SECONDS = 0.5


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default


def get_openai_api_key() -> str:
    raw = os.environ.get("OPENAI_API_KEY", "")
    return raw.strip().strip('"').strip("'")


def get_openrouter_api_key() -> str:
    raw = os.environ.get("OPENROUTER_API_KEY", "")
    return raw.strip().strip('"').strip("'")


def get_provider() -> str:
    return os.environ.get("GENERATION_PROVIDER", "openai").strip().lower() or "openai"


def get_model(provider: str) -> str:
    configured = os.environ.get("GENERATION_MODEL", "").strip()
    if configured:
        return configured
    return DEFAULT_MODEL if provider == "openai" else DEFAULT_OPENROUTER_MODEL


def get_max_retries() -> int:
    return max(0, _env_int("GENERATION_MAX_RETRIES", 2))


def get_deadline_seconds() -> float:
    return max(1.0, _env_float("GENERATION_DEADLINE_SECONDS", 120.0))


def get_request_timeout() -> float:
    return max(1.0, _env_float("GENERATION_REQUEST_TIMEOUT", 60.0))


def build_payload(prompt: str, model: str) -> Dict:
    payload = {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": prompt},
        ],
    }
    payload.update(SAMPLING_PARAMETERS)
    return payload


def extract_completion_text(body: Dict) -> str:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else ""
    return content.strip() if isinstance(content, str) else ""


def backoff_delay(attempt: int) -> float:
    """Exponential backoff with jitter for the given 1-based attempt number."""
    delay = BACKOFF_BASE_SECONDS * (2 ** (attempt - 1))
    return min(BACKOFF_MAX_SECONDS, delay) + random.uniform(0.0, BACKOFF_JITTER_SECONDS)


def request_completion(
    prompt: str,
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    max_retries: Optional[int] = None,
    deadline_seconds: Optional[float] = None,
    request_timeout: Optional[float] = None,
) -> str:
    """Return the raw completion text for ``prompt``.

    Transient failures (network errors, 429 and 5xx responses) are retried
    with jittered exponential backoff while the overall deadline allows it.
    Everything else raises ``UpstreamGenerationError`` straight away.
    """
    provider = (provider or get_provider()).strip().lower()
    if provider not in PROVIDERS:
        raise UpstreamGenerationError(f"Unsupported generation provider '{provider}'.")
    model = model or get_model(provider)
    max_retries = get_max_retries() if max_retries is None else max(0, max_retries)
    deadline_seconds = get_deadline_seconds() if deadline_seconds is None else deadline_seconds
    request_timeout = get_request_timeout() if request_timeout is None else request_timeout

    if provider == "openai":
        url = OPENAI_URL
        api_key = get_openai_api_key()
        if not api_key:
            raise UpstreamGenerationError("OPENAI_API_KEY is not set.")
    else:
        url = OPENROUTER_URL
        api_key = get_openrouter_api_key()
        if not api_key:
            raise UpstreamGenerationError("OPENROUTER_API_KEY is not set.")

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    payload = build_payload(prompt, model)
    deadline = time.monotonic() + deadline_seconds
    max_attempts = max_retries + 1
    last_error: Optional[UpstreamGenerationError] = None

    for attempt in range(1, max_attempts + 1):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break

        try:
            response = requests.post(
                url,
                headers=headers,
                json=payload,
                timeout=min(request_timeout, remaining),
            )
        except requests.RequestException as exc:
            last_error = UpstreamGenerationError(f"{provider} request failed: {exc}")
            logger.warning("Generation attempt %s/%s failed: %s", attempt, max_attempts, exc)
        else:
            if response.status_code < 400:
                try:
                    body = response.json()
                except ValueError as exc:
                    raise UpstreamGenerationError(f"{provider} returned a non-JSON body.") from exc
                raw_text = extract_completion_text(body if isinstance(body, dict) else {})
                if not raw_text:
                    raise UpstreamGenerationError("Model response did not include text output.")
                logger.info(
                    "Generation succeeded provider=%s model=%s attempt=%s chars=%s",
                    provider,
                    model,
                    attempt,
                    len(raw_text),
                )
                return raw_text

            last_error = UpstreamGenerationError(
                f"{provider} request failed ({response.status_code}): {response.text}",
                upstream_status=response.status_code,
            )
            if response.status_code not in RETRYABLE_STATUS_CODES:
                raise last_error
            logger.warning(
                "Generation attempt %s/%s got status %s",
                attempt,
                max_attempts,
                response.status_code,
            )

        if attempt < max_attempts:
            delay = backoff_delay(attempt)
            remaining = deadline - time.monotonic()
            if delay >= remaining:
                logger.warning("Generation deadline reached after %s attempt(s)", attempt)
                break
            time.sleep(delay)

    if last_error is None:
        last_error = UpstreamGenerationError("Generation deadline expired before the request was sent.")
    raise last_error
