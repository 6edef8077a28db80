"""Product input and report schemas.

Attribute names are snake_case in Python; the JSON wire format is camelCase,
matching what the browser client sends and expects back.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductInput(CamelModel):
    """Canonical, validated product description submitted for analysis."""

    product_name: str = Field(..., description="Product name")
    product_category: str = Field(..., description="Product category")
    product_image: Optional[str] = Field(
        None, description="Data URI or URL of the product image"
    )
    one_sentence_pitch: str = Field(..., description="One sentence pitch")
    key_features: str = Field(..., description="Key features, free text")
    cost_of_goods: str = Field(..., description="Cost of goods, decimal as string")
    retail_price: str = Field(..., description="Retail price, decimal as string")
    promo_price: Optional[str] = Field(None, description="Promo price, decimal as string")
    materials: str = Field(..., description="Materials, free text")
    variants: Optional[str] = Field(None, description="Variants, free text")
    target_audience: str = Field(..., description="Target audience, free text")
    competitors: str = Field(..., description="Competitors, free text")
    sales_channels: List[str] = Field(
        ..., min_length=1, description="Sales channels, caller order preserved"
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "productName": "Trail Flask",
                "productCategory": "Outdoor gear",
                "oneSentencePitch": "An insulated flask that clips to any pack.",
                "keyFeatures": "Keeps drinks cold 24h, carabiner lid",
                "costOfGoods": "6.50",
                "retailPrice": "29.99",
                "materials": "Stainless steel",
                "targetAudience": "Day hikers",
                "competitors": "Hydro Flask, Yeti",
                "salesChannels": ["Online", "Retail"],
            }
        },
    )


class Report(ProductInput):
    """A persisted ProductInput plus its analysis and server-assigned identity."""

    id: int = Field(..., description="Server-assigned report id")
    # Stored rows may predate required-field validation, so relax those here.
    product_name: str = ""
    product_category: str = ""
    one_sentence_pitch: Optional[str] = None
    key_features: Optional[str] = None
    cost_of_goods: Optional[str] = None
    retail_price: Optional[str] = None
    materials: Optional[str] = None
    target_audience: Optional[str] = None
    competitors: Optional[str] = None
    sales_channels: List[str] = Field(default_factory=list)
    analysis: Optional[Dict[str, Any]] = Field(
        None, description="Opaque analysis document produced by the model"
    )
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")


class NewReport(ProductInput):
    """A validated ProductInput ready to be written, with its analysis."""

    analysis: Optional[Dict[str, Any]] = None


class ImageUploadResponse(CamelModel):
    image_url: str
    image_analysis: str = ""


class MessageResponse(BaseModel):
    message: str
