"""Chat and content-ideation request/response schemas."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.product_schemas import CamelModel


class ChatMessage(CamelModel):
    """A single turn of the conversation as the client keeps it."""

    id: Optional[str] = None
    type: Literal["user", "bot"] = "user"
    content: str = ""
    related_reports: List[int] = Field(default_factory=list)


class ChatRequest(CamelModel):
    message: str = Field(..., min_length=1, description="The user's message")
    conversation_history: List[ChatMessage] = Field(
        default_factory=list,
        description="Recent turns, oldest first; only the last 5 are used",
    )


class ChatResponse(CamelModel):
    message: str
    related_reports: List[int] = Field(
        default_factory=list, description="Ids of reports relevant to the reply"
    )


class GenerateContentRequest(CamelModel):
    report_id: int


class OptimizeContentRequest(CamelModel):
    report_id: int
    category: str = Field(..., min_length=1)
    selection: str = Field(..., min_length=1, description="Content to optimize")


class OptimizeContentResponse(CamelModel):
    result: str
    optimization_focus: str
