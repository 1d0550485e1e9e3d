"""Client for the Anthropic Messages API.

Sends a single user message and maps every upstream outcome onto a
ProxyError subclass, so the HTTP layer only has to render them.
"""
from __future__ import annotations
import logging
import time
from typing import Any, Optional

import httpx

from prompt_proxy.common.errors import (
    UpstreamFormatError,
    UpstreamRateLimited,
    UpstreamRejected,
    UpstreamUnavailable,
)
from prompt_proxy.common.settings import (
    ANTHROPIC_VERSION,
    DEFAULT_BASE_URL,
    DEFAULT_MODEL_ID,
    Settings,
)

LOGGER = logging.getLogger("promptproxy.upstream")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return "API request failed"
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
        return error["message"]
    return "API request failed"


def _extract_text(data: Any) -> Optional[str]:
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


class UpstreamClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL_ID,
        max_tokens: int = 2000,
        api_version: str = ANTHROPIC_VERSION,
        timeout: float = 120.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.max_tokens = max_tokens
        self.api_version = api_version
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, api_key: str) -> "UpstreamClient":
        return cls(
            api_key=api_key,
            base_url=settings.base_url,
            model=settings.model,
            max_tokens=settings.max_tokens,
            timeout=settings.upstream_timeout,
        )

    def generate(self, prompt: str) -> str:
        """
        Forward `prompt` as the sole user message and return the generated text verbatim.

        Raises:
            UpstreamUnavailable: transport failure.
            UpstreamRateLimited: upstream answered 429.
            UpstreamRejected: any other non-2xx, carrying upstream's status.
            UpstreamFormatError: 2xx without content[0].text.
        """
        url = f"{self.base_url}/v1/messages"
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }

        start = time.time()
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            LOGGER.error("Upstream request failed: %s", e)
            raise UpstreamUnavailable("Internal server error", detail=str(e)) from e

        latency = int((time.time() - start) * 1000)
        LOGGER.info("Upstream responded %s in %sms", r.status_code, latency)

        if r.status_code == 429:
            raise UpstreamRateLimited("Upstream API rate limit exceeded, please try again later.")
        if not r.is_success:
            message = _error_message(r)
            LOGGER.error("Upstream rejected request (%s): %s", r.status_code, message)
            raise UpstreamRejected(message, status_code=r.status_code)

        try:
            data = r.json()
        except ValueError as e:
            LOGGER.error("Malformed response: %s", e)
            raise UpstreamFormatError("Unexpected API response format", detail=str(e)) from e

        text = _extract_text(data)
        if text is None:
            LOGGER.error("Upstream response missing content[0].text")
            raise UpstreamFormatError("Unexpected API response format")
        return text
