"""Prompt templates for marketing analysis, image critique, content and chat."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from app.schemas.product_schemas import ProductInput, Report

NOT_SPECIFIED = "Not specified"

ANALYSIS_SYSTEM_PROMPT = (
    "You are a Senior Product Marketing Strategist with deep expertise in customer "
    "psychology, market positioning, and strategic business analysis. Provide "
    "insightful, forward-thinking analysis that combines data-driven insights with "
    "strategic vision."
)

IMAGE_SYSTEM_PROMPT = (
    "You are a Senior Product Marketing Strategist specializing in visual branding and "
    "conversion optimization. Provide strategic insights with actionable A/B testing "
    "recommendations."
)

IMAGE_INSTRUCTION = (
    "Analyze this product image from a strategic marketing perspective. Focus on visual "
    "identity, packaging design, color psychology, and brand impression. Most "
    "importantly, provide specific A/B testing ideas for improving conversion rates "
    "through visual optimization. Structure your analysis to include: 1) Current visual "
    "assessment, 2) Psychological impact analysis, 3) At least 3 specific A/B testing "
    "recommendations with expected outcomes."
)

CONTENT_SYSTEM_PROMPT = (
    "You are a Senior Content Marketing Strategist specializing in social media "
    "psychology, conversion optimization, and strategic content planning. Always respond "
    "with valid JSON in the exact format requested."
)

OPTIMIZE_SYSTEM_PROMPT = (
    "You are a Senior Content Optimization Strategist specializing in conversion "
    "copywriting, SEO psychology, and strategic persuasion. Follow the 4-step algorithm "
    "and always specify your optimization focus."
)

ANALYSIS_JSON_SHAPE = """{
  "customerAnalysis": {
    "painPoints": ["3-5 key pain points with emotional depth and context"],
    "customerNeedsFramework": {
      "blatantNeeds": ["3-4 obvious needs the customer actively seeks to solve"],
      "latentNeeds": ["3-4 unspoken needs the customer will value once surfaced"],
      "aspirationalNeeds": ["3-4 hopes tied to the customer's identity or future self"],
      "criticalNeeds": ["3-4 mission-essential requirements"]
    },
    "personas": [
      {
        "name": "Persona name",
        "description": "persona description with psychological insights",
        "demographics": "age, income, lifestyle, values, behavioral patterns",
        "jobsToBeDone": {
          "functional": "the practical job the product is hired for",
          "emotional": "the emotional outcome sought",
          "social": "how the persona wants to be perceived"
        }
      }
    ],
    "minimumViableSegment": "most viable initial segment with rationale"
  },
  "positioning": {
    "usp": "unique selling proposition",
    "valueProposition": "value proposition connecting features to outcomes",
    "visualIdentity": {
      "colorPalette": "color psychology and brand impact",
      "typography": "typography and brand perception",
      "packaging": "packaging, shelf appeal and user experience",
      "brandImpression": "overall brand impression with recommendations",
      "abTestingIdeas": ["3 specific A/B test ideas for visual elements"]
    }
  },
  "marketAnalysis": {
    "swot": {
      "strengths": ["3-4"], "weaknesses": ["3-4"],
      "opportunities": ["3-4"], "threats": ["3-4"]
    },
    "towsMatrix": {
      "soStrategies": ["2-3"], "woStrategies": ["2-3"],
      "stStrategies": ["2-3"], "wtStrategies": ["2-3"]
    },
    "competitiveAdvantage": "sustainable competitive advantages",
    "pricingStrategy": "pricing analysis with positioning insights",
    "perceivedValueAnalysis": "how to raise perceived value"
  },
  "goToMarket": {
    "marketingAngles": [
      {"angle": "angle name", "message": "marketing message", "funnelStage": "TOFU|MOFU|BOFU"}
    ],
    "channelStrategy": ["channel recommendations with rationale"],
    "contentIdeas": ["specific content creation ideas"],
    "productDescriptions": [
      {"tone": "Professional|Conversational|Benefit-Focused",
       "description": "Hook-Story-Offer description",
       "framework": "Hook-Story-Offer"}
    ]
  }
}"""

CONTENT_JSON_SHAPE = """{
  "hashtags": {
    "awareness": ["8-10 top-of-funnel hashtags"],
    "communityBuilding": ["8-10 community hashtags"],
    "conversionFocused": ["8-10 purchase-intent hashtags"]
  },
  "captions": {
    "engaging": {"content": "story-driven caption (150-200 words)",
                 "abTestHooks": ["question-based opening", "personal story opening"]},
    "informative": {"content": "educational caption (150-200 words)",
                    "abTestHooks": ["problem-focused opening", "benefit-focused opening"]},
    "promotional": {"content": "conversion caption with CTA (100-150 words)",
                    "abTestHooks": ["urgency-based opening", "value-focused opening"]}
  },
  "storylines": {
    "problemSolution": {"content": "...", "contentPillar": "Education"},
    "behindTheScenes": {"content": "...", "contentPillar": "Authenticity"},
    "customerStory": {"content": "...", "contentPillar": "Social Proof"},
    "educational": {"content": "...", "contentPillar": "Expertise"}
  },
  "hooks": {"question": "...", "statistic": "...", "controversy": "...", "personal": "..."},
  "callToActions": {"soft": "...", "direct": "...", "urgent": "..."}
}"""

OPTIMIZATION_FOCUS_OPTIONS = [
    "SEO Keyword Density and Search Visibility",
    "Emotional Impact and Brand Storytelling",
    "Conversion Rate and Purchase Intent",
    "Readability and User Engagement",
    "Social Proof and Trust Building",
    "Urgency and FOMO Psychology",
]


def _price(value: Optional[str]) -> str:
    return f"${value}" if value else NOT_SPECIFIED


def build_analysis_prompt(product: ProductInput) -> str:
    """Interpolate every product field into the analysis request."""
    return f"""You are a Senior Product Marketing Strategist with 15+ years of experience in product positioning, customer psychology, and go-to-market strategy. Your analysis should be insightful, forward-thinking, and data-driven, while remaining clear and actionable.

Product Data:
- Name: {product.product_name}
- Category: {product.product_category}
- Pitch: {product.one_sentence_pitch}
- Key Features: {product.key_features}
- Cost of Goods: {_price(product.cost_of_goods)}
- Retail Price: {_price(product.retail_price)}
- Promo Price: {_price(product.promo_price)}
- Materials: {product.materials}
- Variants: {product.variants or NOT_SPECIFIED}
- Target Audience: {product.target_audience}
- Competitors: {product.competitors}
- Sales Channels: {", ".join(product.sales_channels)}

Provide a comprehensive strategic analysis in the following JSON structure:
{ANALYSIS_JSON_SHAPE}

Make your analysis strategic, specific, and actionable. Focus on psychological insights, market dynamics, and competitive positioning. Each section should provide both analysis and strategic recommendations.
"""


def build_analysis_messages(product: ProductInput) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
        {"role": "user", "content": build_analysis_prompt(product)},
    ]


def build_image_messages(image_data_uri: str) -> List[Dict[str, Any]]:
    return [
        {"role": "system", "content": IMAGE_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": IMAGE_INSTRUCTION},
                {"type": "image_url", "image_url": {"url": image_data_uri}},
            ],
        },
    ]


def _joined(values: Any, key: Optional[str] = None) -> str:
    if not isinstance(values, list) or not values:
        return NOT_SPECIFIED
    if key:
        values = [v.get(key) for v in values if isinstance(v, dict) and v.get(key)]
    return ", ".join(str(v) for v in values) or NOT_SPECIFIED


def _section(report: Report, key: str) -> Dict[str, Any]:
    """One object-valued section of a stored analysis; {} when absent or malformed."""
    analysis = report.analysis if isinstance(report.analysis, dict) else {}
    section = analysis.get(key)
    return section if isinstance(section, dict) else {}


def build_content_ideas_messages(report: Report) -> List[Dict[str, Any]]:
    positioning = _section(report, "positioning")
    customer = _section(report, "customerAnalysis")
    go_to_market = _section(report, "goToMarket")

    prompt = f"""You are a Senior Content Marketing Strategist with expertise in social media psychology, conversion optimization, and brand storytelling. Create comprehensive content strategies that drive engagement and conversions.

Product Information:
- Name: {report.product_name}
- Category: {report.product_category}
- Pitch: {report.one_sentence_pitch or NOT_SPECIFIED}
- Key Features: {report.key_features or NOT_SPECIFIED}
- Target Audience: {report.target_audience or NOT_SPECIFIED}
- Competitors: {report.competitors or NOT_SPECIFIED}
- Sales Channels: {", ".join(report.sales_channels) or NOT_SPECIFIED}

Strategic Insights:
- Value Proposition: {positioning.get("valueProposition") or NOT_SPECIFIED}
- Target Pain Points: {_joined(customer.get("painPoints"))}
- Marketing Angles: {_joined(go_to_market.get("marketingAngles"), key="angle")}

Generate advanced content strategy in this exact JSON structure:
{CONTENT_JSON_SHAPE}

Ensure all content is strategically aligned with the product's positioning, tailored to the target audience, designed for A/B testing, and authentic to the brand voice.
"""
    return [
        {"role": "system", "content": CONTENT_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def build_optimize_messages(report: Report, category: str, selection: str) -> List[Dict[str, Any]]:
    positioning = _section(report, "positioning")
    customer = _section(report, "customerAnalysis")
    focus_options = "\n".join(f'- "{option}"' for option in OPTIMIZATION_FOCUS_OPTIONS)

    prompt = f"""You are a Senior Content Optimization Strategist with expertise in conversion copywriting, SEO, and psychological persuasion.

PRODUCT CONTEXT:
- Product Name: {report.product_name}
- Product Category: {report.product_category}
- Key Features: {report.key_features or NOT_SPECIFIED}
- Target Audience: {report.target_audience or NOT_SPECIFIED}
- One-line Pitch: {report.one_sentence_pitch or NOT_SPECIFIED}
- Unique Selling Proposition: {positioning.get("usp") or NOT_SPECIFIED}
- Customer Pain Points: {_joined(customer.get("painPoints"))}

CONTENT CATEGORY: {category}

ORIGINAL CONTENT TO OPTIMIZE:
"{selection}"

Transform this content in four steps: strategic analysis, keyword and search-intent optimization, conversion psychology (AIDA, PAS, Hook-Story-Offer), and a strategic polish for brand voice and platform.

OUTPUT REQUIREMENTS:
1. Provide the optimized content in double quotes (ready to copy/paste)
2. State your primary optimization focus on its own line as "Focus: <focus>"

OPTIMIZATION FOCUS OPTIONS:
{focus_options}
"""
    return [
        {"role": "system", "content": OPTIMIZE_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def build_reports_context(reports: List[Report]) -> Dict[str, Any]:
    """Snapshot of stored reports the chat assistant can reason over."""
    return {
        "totalReports": len(reports),
        "products": [
            {
                "id": report.id,
                "name": report.product_name,
                "category": report.product_category,
                "retailPrice": report.retail_price,
                "costOfGoods": report.cost_of_goods,
                "targetAudience": report.target_audience,
                "competitors": report.competitors,
                "salesChannels": report.sales_channels,
                "analysis": report.analysis,
            }
            for report in reports
        ],
    }


def build_chat_system_prompt(reports_context: Dict[str, Any], history_text: str) -> str:
    return f"""You are a Senior Business Intelligence AI Assistant with a friendly, encouraging, and proactive personality, acting as an experienced marketing strategist and personal advisor.

PERSONALITY TRAITS:
- Conversational and warm
- Proactive with strategic insights beyond the basic question
- Encouraging and supportive
- Strategic and analytical, framing data in business context

DATABASE CONTEXT:
{json.dumps(reports_context, indent=2, ensure_ascii=False, default=str)}

CONVERSATION HISTORY:
{history_text}

RESPONSE GUIDELINES:
1. Answer the direct question thoroughly
2. Always provide a strategic insight or proactive recommendation
3. Reference specific products by name when relevant
4. Suggest concrete next steps when appropriate
5. End with an encouraging note or follow-up question

RESPONSE FORMAT:
Always respond with JSON in this exact format:
{{
  "message": "Your friendly, strategic response here",
  "relatedReports": [array of relevant report IDs]
}}"""
