from __future__ import annotations

import json
import logging
from time import perf_counter
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings
from app.core.errors import UpstreamAnalysisError

logger = logging.getLogger(__name__)


class LLMClientError(UpstreamAnalysisError):
    """Raised when the LLM provider returns an error or an unusable reply."""


class LLMClient:
    """Thin async client for an OpenAI-compatible chat.completions endpoint.

    Holds no per-call state; one instance (and its connection pool) is shared
    by all requests. Calls are never retried here.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self.settings = settings
        self._http = http_client

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        json_mode: bool = False,
        allow_empty: bool = False,
        **kwargs: Any,
    ) -> str:
        """
        Run one chat completion and return the reply text.

        Args:
            messages: OpenAI-style message list
            model: Model name, defaults to ``settings.llm_model``
            json_mode: Ask for ``response_format={"type": "json_object"}``
            allow_empty: Return "" for a reply with no text instead of raising
            **kwargs: Passed through (temperature, max_tokens, ...)

        Raises:
            LLMClientError: transport failure, non-2xx status, or empty reply
        """
        payload: Dict[str, Any] = {
            "model": model or self.settings.llm_model,
            "messages": messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}
        payload.update(kwargs)

        headers = {
            "Authorization": f"Bearer {self.settings.llm_api_key}",
            "Content-Type": "application/json",
        }

        # Never log prompt bodies or image payloads in full
        safe_payload = {
            "model": payload["model"],
            "messages": len(messages),
            "json_mode": json_mode,
            "temperature": payload.get("temperature"),
            "max_tokens": payload.get("max_tokens"),
        }
        logger.info(
            "[LLM] Request: url=%s, payload=%s",
            self.settings.llm_base_url,
            json.dumps(safe_payload, ensure_ascii=False),
        )

        start = perf_counter()
        try:
            response = await self._http.post(
                self.settings.llm_base_url,
                headers=headers,
                json=payload,
            )
        except httpx.TimeoutException as exc:
            raise LLMClientError("LLM request timed out") from exc
        except httpx.RequestError as exc:
            raise LLMClientError(f"LLM transport error: {exc}") from exc

        duration_ms = (perf_counter() - start) * 1000
        logger.info(
            "[LLM] Response: status=%s, duration_ms=%.2f, body_snippet=%s",
            response.status_code,
            duration_ms,
            response.text[:200],
        )
        if response.is_error:
            raise LLMClientError(
                f"LLM request failed with status {response.status_code}: {response.text[:500]}"
            )

        text = self._extract_text(response)
        if not text:
            if allow_empty:
                return ""
            raise LLMClientError("LLM response did not contain text output")
        return text

    async def complete_json(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Run a JSON-mode completion and parse the reply."""
        text = await self.complete(messages, model=model, json_mode=True, **kwargs)
        return parse_json_reply(text)

    @staticmethod
    def _extract_text(response: httpx.Response) -> Optional[str]:
        """Pull ``choices[0].message.content`` out of the provider response."""
        try:
            data = response.json()
        except ValueError as exc:
            raise LLMClientError("Failed to parse LLM JSON response") from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices:
            first = choices[0]
            if isinstance(first, dict):
                msg = first.get("message")
                if isinstance(msg, dict) and isinstance(msg.get("content"), str):
                    return msg["content"]
                # legacy completions shape
                if isinstance(first.get("text"), str):
                    return first["text"]
        return None


def parse_json_reply(content: str) -> Any:
    """
    Parse a model reply as JSON, tolerating a markdown code fence around it.

    Raises:
        LLMClientError: when the reply is not valid JSON
    """
    text = content.strip()
    if text.startswith("```"):
        fence_end = text.rfind("```")
        first_newline = text.find("\n")
        if fence_end > 0 and first_newline != -1 and first_newline < fence_end:
            text = text[first_newline + 1:fence_end].strip()
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise LLMClientError(f"Model reply was not valid JSON: {exc}") from exc
