"""Tests for the scheme recommendation client."""

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from claimscan.recommendation.client import (
    FALLBACK_RECOMMENDATIONS,
    Claim,
    RecommendationClient,
    SchemeRecommendation,
    build_prompt,
    parse_recommendations,
    recommend_with_fallback,
)
from claimscan.recommendation.exceptions import RecommendationError
from claimscan.utils.config import RecommendationConfig

Handler = Callable[[httpx.Request], httpx.Response]

_GENERATED = (
    "Sure! Here are the schemes:\n"
    '{"recommendations": ['
    '{"id": "pmay-g", "name": "PMAY-G", "description": "Rural housing", '
    '"benefits": "Pucca house", "matchScore": 91.6, "category": "Housing", "icon": "🏠"},'
    '{"id": "jal", "name": "Jal Jeevan Mission", "matchScore": 140}'
    "]}\nHope this helps."
)


def _claim() -> Claim:
    return Claim(id="FRA001", holder="Ramesh Kumar", village="Khargone", type="IFR")


def _config(token: str = "hf-test") -> RecommendationConfig:
    return RecommendationConfig(
        base_url="https://hf.test/models", model="org/model-7b", api_token=token
    )


def _recommend(
    config: RecommendationConfig, handler: Handler, ocr_text: str | None = None
) -> list[SchemeRecommendation]:
    async def run() -> list[SchemeRecommendation]:
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as http_client:
            client = RecommendationClient(config, http_client)
            return await client.recommend(_claim(), ocr_text)

    return asyncio.run(run())


class TestParseRecommendations:
    """Tests for pulling recommendations out of generated text."""

    def test_json_surrounded_by_prose(self) -> None:
        recs = parse_recommendations(_GENERATED)
        assert [r.id for r in recs] == ["pmay-g", "jal"]
        assert recs[0].category == "Housing"

    def test_scores_rounded_and_clamped(self) -> None:
        recs = parse_recommendations(_GENERATED)
        assert [r.match_score for r in recs] == [92, 100]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (-5, 0),
            (72.5, 73),
            ("abc", 0),
            (None, 0),
            ("64", 64),
            ("Infinity", 100),
            ("-Infinity", 0),
            ("1e999", 100),
            ("NaN", 0),
        ],
    )
    def test_score_sanitized(self, raw: object, expected: int) -> None:
        text = json.dumps({"recommendations": [{"id": "x", "name": "X", "matchScore": raw}]})
        assert parse_recommendations(text)[0].match_score == expected

    def test_no_json(self) -> None:
        with pytest.raises(RecommendationError, match="did not return JSON"):
            parse_recommendations("I cannot help with that.")

    def test_invalid_json(self) -> None:
        with pytest.raises(RecommendationError, match="Invalid"):
            parse_recommendations('{"recommendations": [ {oops} ]}')

    def test_empty_recommendations(self) -> None:
        with pytest.raises(RecommendationError, match="No recommendations"):
            parse_recommendations('{"recommendations": []}')

    def test_missing_recommendations_key(self) -> None:
        with pytest.raises(RecommendationError):
            parse_recommendations('{"schemes": []}')


class TestBuildPrompt:
    """Tests for prompt rendering."""

    def test_includes_claim_json(self) -> None:
        prompt = build_prompt(_claim())
        assert '"village": "Khargone"' in prompt
        assert "OCR Extract (optional): N/A" in prompt

    def test_ocr_text_truncated(self) -> None:
        prompt = build_prompt(_claim(), "x" * 5000)
        assert "x" * 2000 in prompt
        assert "x" * 2001 not in prompt


class TestRecommendationClient:
    """Tests for the inference API call."""

    def test_list_response(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[{"generated_text": _GENERATED}])

        recs = _recommend(_config(), handler, ocr_text="Village: Khargone")

        assert [r.name for r in recs] == ["PMAY-G", "Jal Jeevan Mission"]
        request = seen[0]
        assert str(request.url) == "https://hf.test/models/org%2Fmodel-7b"
        assert request.headers["Authorization"] == "Bearer hf-test"
        body = json.loads(request.content)
        assert body["parameters"] == {
            "max_new_tokens": 500,
            "temperature": 0.3,
            "return_full_text": False,
        }
        assert "Village: Khargone" in body["inputs"]

    def test_object_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"generated_text": _GENERATED})

        assert len(_recommend(_config(), handler)) == 2

    def test_string_response(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_GENERATED)

        assert len(_recommend(_config(), handler)) == 2

    def test_http_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="Model is loading")

        with pytest.raises(RecommendationError, match="HF API 503: Model is loading"):
            _recommend(_config(), handler)

    def test_missing_token(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        with pytest.raises(RecommendationError, match="token"):
            _recommend(_config(token=""), handler)


class TestRecommendWithFallback:
    """Tests for the call-site fallback."""

    def test_fallback_on_error(self) -> None:
        client = RecommendationClient(_config(token=""))
        recs = asyncio.run(recommend_with_fallback(client, _claim()))
        assert recs == list(FALLBACK_RECOMMENDATIONS)
        assert [r.name for r in recs] == ["MGNREGA", "PM-KISAN"]
        assert [r.match_score for r in recs] == [85, 78]

    def test_fallback_on_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async def run() -> list[SchemeRecommendation]:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as http_client:
                client = RecommendationClient(_config(), http_client)
                return await recommend_with_fallback(client, _claim())

        assert asyncio.run(run())[0].id == "mgnrega"

    def test_model_result_passed_through(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"generated_text": _GENERATED}])

        async def run() -> list[SchemeRecommendation]:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as http_client:
                client = RecommendationClient(_config(), http_client)
                return await recommend_with_fallback(client, _claim())

        assert [r.id for r in asyncio.run(run())] == ["pmay-g", "jal"]
