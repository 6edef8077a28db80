"""AI gateway: fixed prompt templates over the chat-completions client.

Each call is independent; nothing is remembered between calls beyond the
conversation history a caller passes to ``chat`` explicitly.
"""
from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from app.core.config import Settings
from app.core.errors import UpstreamAnalysisError
from app.schemas.chat_schemas import ChatMessage
from app.schemas.product_schemas import ProductInput, Report
from app.services.llm_client import LLMClient, LLMClientError, parse_json_reply
from app.services.prompt_templates import (
    build_analysis_messages,
    build_chat_system_prompt,
    build_content_ideas_messages,
    build_image_messages,
    build_optimize_messages,
)

logger = logging.getLogger(__name__)

CHAT_HISTORY_TURNS = 5
CHAT_FALLBACK_MESSAGE = (
    "I'm sorry, I encountered an error processing your request. Please try again."
)
CHAT_EMPTY_MESSAGE = "I'm sorry, I couldn't process that request."
DEFAULT_OPTIMIZATION_FOCUS = "Content Enhancement and Engagement"

_FOCUS_PATTERN = re.compile(
    r"(?:I have optimized|Optimized for|Focus:|Primary optimization:)\s*([^.\n]+)",
    re.IGNORECASE,
)
_QUOTED_PATTERN = re.compile(r'"([^"]+)"')


@dataclass
class ChatReply:
    message: str
    related_report_ids: List[int] = field(default_factory=list)


@dataclass
class OptimizedContent:
    result: str
    optimization_focus: str


def image_data_uri(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class MarketingAIGateway:
    """Request/response adapter between product data and the language model."""

    def __init__(self, llm_client: LLMClient, settings: Settings) -> None:
        self.llm = llm_client
        self.settings = settings

    async def analyze(self, product: ProductInput) -> Dict[str, Any]:
        """
        Produce the structured marketing analysis for a validated product.

        Raises:
            UpstreamAnalysisError: the model call failed or the reply was not
                a JSON object. Not retried.
        """
        logger.info(f"[AI_GATEWAY] Analyzing product: name={product.product_name}")
        try:
            analysis = await self.llm.complete_json(
                build_analysis_messages(product),
                temperature=0.7,
                max_tokens=4000,
            )
        except LLMClientError as exc:
            raise UpstreamAnalysisError(f"Failed to generate analysis: {exc}") from exc

        if not isinstance(analysis, dict):
            raise UpstreamAnalysisError(
                f"Failed to generate analysis: expected a JSON object, got {type(analysis).__name__}"
            )
        logger.info(f"[AI_GATEWAY] ✓ Analysis generated: sections={sorted(analysis.keys())}")
        return analysis

    async def analyze_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
        """
        Ask the vision model for a free-text visual-identity critique.

        Callers treat failures as non-fatal.

        Raises:
            UpstreamAnalysisError: empty image or failed model call
        """
        if not image_bytes:
            raise UpstreamAnalysisError("Failed to analyze image: image is empty")
        try:
            text = await self.llm.complete(
                build_image_messages(image_data_uri(image_bytes, mime_type)),
                model=self.settings.vision_model,
                temperature=0.7,
                max_tokens=800,
            )
        except LLMClientError as exc:
            raise UpstreamAnalysisError(f"Failed to analyze image: {exc}") from exc
        logger.info(f"[AI_GATEWAY] ✓ Image analyzed: chars={len(text)}")
        return text

    async def chat(
        self,
        message: str,
        history: Sequence[ChatMessage],
        reports_context: Dict[str, Any],
    ) -> ChatReply:
        """
        Answer a question about the stored reports.

        Empty or unparseable replies degrade to a fixed apology with no
        related reports; transport failures still raise.
        """
        history_text = "\n".join(
            f"{turn.type}: {turn.content}" for turn in list(history)[-CHAT_HISTORY_TURNS:]
        )
        messages = [
            {"role": "system", "content": build_chat_system_prompt(reports_context, history_text)},
            {"role": "user", "content": message},
        ]
        reply_text = await self.llm.complete(
            messages, json_mode=True, allow_empty=True, temperature=0.8, max_tokens=1000
        )
        if not reply_text.strip():
            logger.warning("[AI_GATEWAY] Chat reply was empty")
            return ChatReply(message=CHAT_EMPTY_MESSAGE)

        try:
            reply = parse_json_reply(reply_text)
        except LLMClientError as exc:
            logger.error(f"[AI_GATEWAY] Error parsing chat response: {exc}")
            return ChatReply(message=CHAT_FALLBACK_MESSAGE)

        if not isinstance(reply, dict):
            logger.error("[AI_GATEWAY] Chat reply was not a JSON object")
            return ChatReply(message=CHAT_FALLBACK_MESSAGE)

        related = reply.get("relatedReports")
        related_ids = [
            item for item in related if isinstance(item, int) and not isinstance(item, bool)
        ] if isinstance(related, list) else []
        text = reply.get("message")
        return ChatReply(
            message=text if isinstance(text, str) and text else CHAT_EMPTY_MESSAGE,
            related_report_ids=related_ids,
        )

    async def generate_content_ideas(self, report: Report) -> Dict[str, Any]:
        """Hashtags, captions, storylines, hooks and CTAs for a saved report."""
        logger.info(f"[AI_GATEWAY] Generating content ideas: report_id={report.id}")
        try:
            ideas = await self.llm.complete_json(
                build_content_ideas_messages(report),
                temperature=0.8,
                max_tokens=3000,
            )
        except LLMClientError as exc:
            raise UpstreamAnalysisError(f"Failed to generate content ideas: {exc}") from exc
        if not isinstance(ideas, dict):
            raise UpstreamAnalysisError("Failed to parse content ideas response")
        return ideas

    async def optimize_content(
        self, report: Report, category: str, selection: str
    ) -> OptimizedContent:
        """Rewrite a piece of generated content and name the optimization focus."""
        logger.info(
            f"[AI_GATEWAY] Optimizing content: report_id={report.id}, category={category}"
        )
        try:
            reply = await self.llm.complete(
                build_optimize_messages(report, category, selection),
                temperature=0.7,
                max_tokens=1000,
            )
        except LLMClientError as exc:
            raise UpstreamAnalysisError(f"Failed to optimize content: {exc}") from exc
        return extract_optimized_content(reply, selection)


def extract_optimized_content(reply: str, selection: str) -> OptimizedContent:
    """Split a free-text optimization reply into content and focus."""
    focus_match = _FOCUS_PATTERN.search(reply)
    focus = focus_match.group(1).strip() if focus_match else DEFAULT_OPTIMIZATION_FOCUS

    quoted = _QUOTED_PATTERN.search(reply)
    content = quoted.group(1).strip() if quoted else reply.strip()
    return OptimizedContent(result=content or selection, optimization_focus=focus)
