"""Shared parsing and retry utilities for Gemini responses."""

import re
import sys

import httpx
from google.genai import errors as genai_errors
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

TRANSIENT_STATUS_CODES = (429, 500, 502, 503)


def strip_fences(text: str) -> str:
    """Strip markdown code fences from LLM output if present."""
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def message_text(response) -> str:
    """Return the text of a chat model response.

    Newer chat models may return content as a list of blocks instead of a
    plain string; text blocks are concatenated in order.
    """
    content = response.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _is_transient(exc: BaseException) -> bool:
    """Return True if the exception is a transient HTTP/network error worth retrying."""
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, httpx.ConnectError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    if isinstance(exc, genai_errors.APIError):
        return exc.code in TRANSIENT_STATUS_CODES
    return False


def _retrying(max_retries: int):
    """Build the tenacity decorator shared by all remote calls."""
    from kindyspell.config import get_config

    config = get_config()
    retries = config.get("llm_max_retries", max_retries)

    return retry(
        stop=stop_after_attempt(retries + 1),  # +1 because first attempt counts
        wait=wait_exponential(
            multiplier=1,
            min=config.get("retry_wait_min", 2),
            max=config.get("retry_wait_max", 16),
        ),
        retry=retry_if_exception(_is_transient),
        reraise=True,
        before_sleep=lambda state: print(
            f"[KindySpell] Transient error: {state.outcome.exception()!r}. "
            f"Retrying in {state.next_action.sleep:.0f}s "
            f"(attempt {state.attempt_number}/{retries})...",
            file=sys.stderr,
        ),
    )


async def ainvoke_with_retry(llm, messages, max_retries: int = 3):
    """Await llm.ainvoke(messages) with exponential backoff on transient errors.

    Retries on HTTP 429/500/502/503, connection errors, and timeouts.
    Non-transient errors (auth failures, schema issues) are raised immediately.
    """

    @_retrying(max_retries)
    async def _invoke():
        return await llm.ainvoke(messages)

    return await _invoke()


async def generate_with_retry(client, max_retries: int = 3, **kwargs):
    """Await client.aio.models.generate_content(**kwargs) with the same retry policy."""

    @_retrying(max_retries)
    async def _generate():
        return await client.aio.models.generate_content(**kwargs)

    return await _generate()
