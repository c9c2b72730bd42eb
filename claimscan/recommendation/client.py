"""Scheme recommendations from a hosted text-generation model.

The model is prompted to answer with strict JSON. Generated text is
scanned for the first JSON object, validated, and match scores are
clamped to ``[0, 100]``. Callers that must always show something use
``recommend_with_fallback``.
"""

import json
import math
import re
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from claimscan.utils.config import RecommendationConfig
from claimscan.utils.logger import get_logger

from .exceptions import RecommendationError

logger = get_logger(__name__)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)
_OCR_TEXT_LIMIT = 2000

_PROMPT_TEMPLATE = """\
You are a government schemes recommender. Return ONLY strict JSON matching this schema:
{{
  "recommendations": [
    {{ "id": "string", "name": "string", "description": "string", "benefits": "string",
      "matchScore": 0-100, "category": "string", "icon": "string emoji" }}
  ]
}}

Context:
- Claim: {claim}
- OCR Extract (optional): {ocr_text}

Rules:
- Output only JSON.
- 4 to 6 items.
- Set matchScore based on relevance to claim type and village context."""


class Claim(BaseModel):
    """A land-rights claim recommendations are generated for."""

    id: str
    holder: str
    village: str
    type: str


class SchemeRecommendation(BaseModel):
    """A welfare scheme suggested for a claim."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    description: str = ""
    benefits: str = ""
    match_score: int = Field(default=0, alias="matchScore")
    category: str = ""
    icon: str = ""

    @field_validator("match_score", mode="before")
    @classmethod
    def clamp_score(cls, value: object) -> int:
        try:
            score = float(value)
        except (TypeError, ValueError):
            return 0
        if math.isnan(score):
            return 0
        # Clamp first so infinities never reach floor().
        return int(math.floor(max(0.0, min(100.0, score)) + 0.5))


class _RecommendationPayload(BaseModel):
    recommendations: list[SchemeRecommendation]


FALLBACK_RECOMMENDATIONS: tuple[SchemeRecommendation, ...] = (
    SchemeRecommendation(
        id="mgnrega",
        name="MGNREGA",
        description="Guaranteed wage employment",
        benefits="100 days work",
        match_score=85,
        category="Livelihood",
        icon="💼",
    ),
    SchemeRecommendation(
        id="pm-kisan",
        name="PM-KISAN",
        description="Income support to farmers",
        benefits="₹6,000/year",
        match_score=78,
        category="Agriculture",
        icon="🌾",
    ),
)


def build_prompt(claim: Claim, ocr_text: str | None = None) -> str:
    """Render the recommendation prompt for a claim."""
    return _PROMPT_TEMPLATE.format(
        claim=json.dumps(claim.model_dump()),
        ocr_text=ocr_text[:_OCR_TEXT_LIMIT] if ocr_text else "N/A",
    )


def _generated_text(data: object) -> str:
    """Pull generated text out of the API's string, list, or object shapes."""
    if isinstance(data, str):
        return data
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        return data.get("generated_text") or ""
    return ""


def parse_recommendations(text: str) -> list[SchemeRecommendation]:
    """Extract recommendations from generated model text.

    Args:
        text: Raw generated text, possibly surrounded by prose.

    Returns:
        Validated recommendations with clamped match scores.

    Raises:
        RecommendationError: If no valid, non-empty JSON payload is found.
    """
    match = _JSON_OBJECT.search(text)
    if not match:
        raise RecommendationError("Model did not return JSON")
    try:
        payload = _RecommendationPayload.model_validate_json(match.group(0))
    except ValidationError as exc:
        raise RecommendationError(f"Invalid recommendation JSON: {exc}") from exc
    if not payload.recommendations:
        raise RecommendationError("No recommendations in JSON")
    return payload.recommendations


class RecommendationClient:
    """Client for the hosted text-generation inference API.

    Args:
        config: Recommendation backend configuration.
        http_client: Optional shared ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        config: RecommendationConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        model = quote(self.config.model, safe="")
        return f"{self.config.base_url.rstrip('/')}/{model}"

    async def recommend(
        self, claim: Claim, ocr_text: str | None = None
    ) -> list[SchemeRecommendation]:
        """Generate scheme recommendations for a claim.

        Args:
            claim: The claim to recommend schemes for.
            ocr_text: Optional recognized text from the claim document.

        Returns:
            Recommendations returned by the model.

        Raises:
            RecommendationError: On missing credentials, HTTP errors, or an
                unusable response.
        """
        if not self.config.api_token:
            raise RecommendationError("Missing recommendation API token (HF_TOKEN)")

        body = {
            "inputs": build_prompt(claim, ocr_text),
            "parameters": {
                "max_new_tokens": self.config.max_new_tokens,
                "temperature": self.config.temperature,
                "return_full_text": False,
            },
        }
        headers = {"Authorization": f"Bearer {self.config.api_token}"}

        logger.info("Requesting recommendations for claim %s", claim.id)
        if self._http_client is not None:
            response = await self._post(self._http_client, body, headers)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._post(client, body, headers)

        if not response.is_success:
            raise RecommendationError(
                f"HF API {response.status_code}: {response.text or response.reason_phrase}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise RecommendationError("Recommendation response is not JSON") from exc

        recommendations = parse_recommendations(_generated_text(data))
        logger.info("Received %d recommendations", len(recommendations))
        return recommendations

    async def _post(
        self, client: httpx.AsyncClient, body: dict, headers: dict[str, str]
    ) -> httpx.Response:
        return await client.post(
            self.endpoint,
            json=body,
            headers=headers,
            timeout=self.config.timeout_seconds,
        )


async def recommend_with_fallback(
    client: RecommendationClient, claim: Claim, ocr_text: str | None = None
) -> list[SchemeRecommendation]:
    """Return model recommendations, or the static fallback on failure."""
    try:
        return await client.recommend(claim, ocr_text)
    except (RecommendationError, httpx.HTTPError) as exc:
        logger.warning("Recommendation failed, using fallback: %s", exc)
        return list(FALLBACK_RECOMMENDATIONS)
