"""
Text generation client (Anthropic Messages API or local Ollama-style server).

Used by the news generator and the company roster provider. The client
only moves text; prompt building and response parsing live with callers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class TextGenerationError(Exception):
    """Text generation request failed or returned no text"""


class TextGenerationClient:
    def __init__(
        self,
        provider: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.provider = (provider or settings.LLM_PROVIDER or "none").lower()
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.api_key = (api_key if api_key is not None else settings.ANTHROPIC_API_KEY) or None
        self.timeout_seconds = timeout_seconds or settings.LLM_TIMEOUT_SECONDS
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS

    @property
    def enabled(self) -> bool:
        if self.provider == "anthropic":
            return bool(self.api_key)
        return self.provider == "local"

    async def complete(self, prompt: str) -> str:
        if self.provider == "anthropic":
            return await self._complete_anthropic(prompt)
        if self.provider == "local":
            return await self._complete_local(prompt)
        raise TextGenerationError(f"Text generation disabled (provider={self.provider})")

    async def _post(self, url: str, body: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise TextGenerationError(f"Request to {url} failed: {exc}") from exc

        if resp.status_code != 200:
            logger.debug("LLM API %s: %s", resp.status_code, (resp.text or "")[:300])
            raise TextGenerationError(f"LLM API returned status {resp.status_code}")
        try:
            return resp.json()
        except ValueError as exc:
            raise TextGenerationError("LLM API returned non-JSON body") from exc

    async def _complete_anthropic(self, prompt: str) -> str:
        if not self.api_key:
            raise TextGenerationError("ANTHROPIC_API_KEY is not configured")

        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = await self._post(f"{self.base_url}/v1/messages", body, headers)
        text = _extract_message_text(data)
        if not text:
            raise TextGenerationError("LLM response contained no text")
        return text

    async def _complete_local(self, prompt: str) -> str:
        body = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        data = await self._post(f"{self.base_url}/api/generate", body)
        text = data.get("response", "") if isinstance(data, dict) else ""
        if not text:
            raise TextGenerationError("LLM response contained no text")
        return text


def _extract_message_text(payload: Dict[str, Any]) -> str:
    # Messages API: {"content": [{"type": "text", "text": "..."}]}
    if not isinstance(payload, dict):
        return ""
    parts = payload.get("content") or []
    texts = [
        part.get("text", "")
        for part in parts
        if isinstance(part, dict) and part.get("type") == "text"
    ]
    return "".join(texts)
