"""Report service: orchestrates normalize -> validate -> analyze -> persist.

The service owns no state of its own; the gateway and repository are
injected once per process and shared by all requests.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from app.core.errors import NotFoundError, UpstreamAnalysisError, ValidationError
from app.repositories.report_repository import ReportRepository
from app.schemas.chat_schemas import ChatMessage
from app.schemas.product_schemas import NewReport, Report
from app.services.ai_gateway import ChatReply, MarketingAIGateway, OptimizedContent
from app.services.input_normalizer import normalize_product_input
from app.services.prompt_templates import build_reports_context
from app.services.product_validator import validate_product_input

logger = logging.getLogger(__name__)

IMAGE_ANALYSIS_KEY = "imageAnalysis"
IMAGE_WARNING = "Image analysis unavailable; the report was generated without it."

_DATA_URI_PATTERN = re.compile(r"^data:([\w.+-]+/[\w.+-]+)?(;[^,]*)?,(.*)$", re.DOTALL)


@dataclass
class UploadedImage:
    content: bytes
    filename: str
    content_type: str


@dataclass
class AnalysisOutcome:
    """Analysis document plus a non-fatal warning when the image was skipped."""

    analysis: Dict[str, Any]
    warning: Optional[str] = None


def is_data_uri(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def decode_data_uri(uri: str) -> Tuple[bytes, str]:
    """
    Decode a base64 ``data:image/...`` URI.

    Raises:
        ValueError: not a base64 image data URI, or undecodable payload
    """
    match = _DATA_URI_PATTERN.match(uri.strip())
    if not match:
        raise ValueError("not a data URI")
    mime_type = match.group(1) or ""
    params = match.group(2) or ""
    if not mime_type.startswith("image/"):
        raise ValueError(f"unsupported media type: {mime_type or 'unknown'}")
    if ";base64" not in params:
        raise ValueError("data URI is not base64 encoded")
    try:
        content = base64.b64decode(match.group(3), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid base64 payload: {exc}") from exc
    if not content:
        raise ValueError("empty image payload")
    return content, mime_type


class ReportService:
    def __init__(self, gateway: MarketingAIGateway, repository: ReportRepository) -> None:
        self.gateway = gateway
        self.repository = repository

    async def analyze_only(
        self, raw: Mapping[str, Any], image: Optional[UploadedImage] = None
    ) -> AnalysisOutcome:
        """
        Validate a submission and produce its analysis without saving it.

        An image is taken from ``image`` or from a data-URI ``productImage``.
        Image problems never fail the call; they surface as ``warning``.

        Raises:
            ValidationError: invalid submission, before any model call
            UpstreamAnalysisError: the main analysis failed
        """
        product = validate_product_input(normalize_product_input(raw))
        logger.info(f"[SERVICE] Analyze: product_name={product.product_name}")

        analysis = await self.gateway.analyze(product)

        image_bytes: Optional[bytes] = None
        mime_type = "image/jpeg"
        warning: Optional[str] = None
        if image is not None:
            image_bytes, mime_type = image.content, image.content_type
        elif is_data_uri(product.product_image):
            try:
                image_bytes, mime_type = decode_data_uri(product.product_image)
            except ValueError as exc:
                logger.warning(f"[SERVICE] Product image could not be decoded: {exc}")
                warning = IMAGE_WARNING

        if image_bytes is not None:
            try:
                analysis[IMAGE_ANALYSIS_KEY] = await self.gateway.analyze_image(
                    image_bytes, mime_type
                )
            except UpstreamAnalysisError as exc:
                logger.warning(f"[SERVICE] Image analysis skipped: {exc.message}")
                warning = IMAGE_WARNING

        return AnalysisOutcome(analysis=analysis, warning=warning)

    async def analyze_image(self, image: UploadedImage) -> str:
        """Vision critique for a standalone upload; "" when analysis fails."""
        try:
            return await self.gateway.analyze_image(image.content, image.content_type)
        except UpstreamAnalysisError as exc:
            logger.warning(f"[SERVICE] Image analysis failed: {exc.message}")
            return ""

    async def create_report(
        self,
        raw: Mapping[str, Any],
        analysis: Optional[Dict[str, Any]] = None,
        image: Optional[UploadedImage] = None,
    ) -> Report:
        """
        Validate, upload the image if any, then persist the report.

        Upload always happens before the insert; a failed upload means
        nothing is written. A failed insert after a successful upload leaves
        the object behind and logs its URL.
        """
        product = validate_product_input(normalize_product_input(raw))

        if image is None and is_data_uri(product.product_image):
            try:
                content, mime_type = decode_data_uri(product.product_image)
            except ValueError as exc:
                raise ValidationError([("productImage", f"Invalid image data: {exc}")]) from exc
            subtype = mime_type.split("/", 1)[1].split("+", 1)[0]
            image = UploadedImage(content, f"product-image.{subtype}", mime_type)

        uploaded_url: Optional[str] = None
        if image is not None:
            uploaded_url = await self.repository.upload_image(
                image.content, image.filename, image.content_type
            )

        new_report = NewReport.model_validate(
            {
                **product.model_dump(),
                "product_image": uploaded_url or product.product_image,
                "analysis": analysis,
            }
        )
        try:
            report = await self.repository.create_report(new_report)
        except Exception:
            if uploaded_url:
                logger.error(f"[SERVICE] Report insert failed; orphaned image: {uploaded_url}")
            raise
        logger.info(f"[SERVICE] ✓ Report saved: id={report.id}")
        return report

    async def list_reports(self) -> List[Report]:
        return await self.repository.list_reports()

    async def get_report(self, report_id: int) -> Report:
        report = await self.repository.get_report(report_id)
        if report is None:
            raise NotFoundError("Report")
        return report

    async def delete_report(self, report_id: int) -> None:
        await self.repository.delete_report(report_id)

    async def chat(self, message: str, history: Sequence[ChatMessage]) -> ChatReply:
        reports = await self.repository.list_reports()
        logger.info(f"[SERVICE] Chat over {len(reports)} reports")
        return await self.gateway.chat(message, history, build_reports_context(reports))

    async def generate_content_ideas(self, report_id: int) -> Dict[str, Any]:
        report = await self.get_report(report_id)
        return await self.gateway.generate_content_ideas(report)

    async def optimize_content(
        self, report_id: int, category: str, selection: str
    ) -> OptimizedContent:
        report = await self.get_report(report_id)
        return await self.gateway.optimize_content(report, category, selection)
