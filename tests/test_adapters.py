"""Tests for provider adapters: request building, response parsing, auth placement."""

from __future__ import annotations

import httpx
import pytest
from helpers import make_test_providers

from imagine_gateway.gateway.adapters import (
    ADAPTER_REGISTRY,
    ASPECT_RATIO_SIZES,
    GoogleNativeAdapter,
    OpenAICompatibleAdapter,
    PreparedRequest,
    aspect_ratio_to_size,
    get_adapter,
    parse_images,
)
from imagine_gateway.gateway.errors import ProviderHTTPError, ProviderResponseError
from imagine_gateway.gateway.types import (
    AuthType,
    ChatMessage,
    ChatRequest,
    GenerationRequest,
    Provider,
    ProviderFamily,
    ResponseShape,
)


@pytest.fixture
def alpha():
    return make_test_providers()[0]


@pytest.fixture
def beta():
    return make_test_providers()[1]


# ==========================================================================
# Test: Aspect ratio mapping
# ==========================================================================


class TestAspectRatio:
    @pytest.mark.parametrize(
        "ratio,size",
        [
            ("1:1", "1024x1024"),
            ("16:9", "1920x1080"),
            ("9:16", "1080x1920"),
            ("4:3", "1024x768"),
            ("3:4", "768x1024"),
            ("21:9", "2560x1080"),
            ("2:3", "1365x2048"),
            ("3:2", "2048x1365"),
            ("4:5", "1024x1280"),
            ("5:4", "1280x1024"),
        ],
    )
    def test_known_ratios(self, ratio, size):
        assert aspect_ratio_to_size(ratio) == size

    def test_table_has_exactly_ten_entries(self):
        assert len(ASPECT_RATIO_SIZES) == 10

    @pytest.mark.parametrize("ratio", ["7:3", "", None, "square"])
    def test_unknown_or_missing_ratio_defaults_to_square(self, ratio):
        assert aspect_ratio_to_size(ratio) == "1024x1024"


# ==========================================================================
# Test: Response parsing
# ==========================================================================


class TestParseImages:
    def test_openai_data_urls_and_b64(self):
        data = {"data": [{"url": "https://img/1.png"}, {"b64_json": "QUJD"}, {"revised_prompt": "x"}]}
        assert parse_images(data, ResponseShape.OPENAI_DATA) == ["https://img/1.png", "QUJD"]

    def test_openai_shape_falls_back_to_images_field(self):
        assert parse_images({"images": ["https://img/2.png"]}, ResponseShape.OPENAI_DATA) == ["https://img/2.png"]

    def test_google_generated_images(self):
        data = {
            "generatedImages": [
                {"base64": "AAA"},
                {"url": "https://img/3.png"},
                {"image": {"imageBytes": "BBB"}},
                {},
            ]
        }
        assert parse_images(data, ResponseShape.GOOGLE_GENERATED_IMAGES) == ["AAA", "https://img/3.png", "BBB"]

    def test_generic_images_list_and_scalar(self):
        assert parse_images({"images": ["a", "", 3, "b"]}, ResponseShape.GENERIC_IMAGES) == ["a", "b"]
        assert parse_images({"images": "single"}, ResponseShape.GENERIC_IMAGES) == ["single"]

    def test_shape_is_not_sniffed(self):
        google_payload = {"generatedImages": [{"base64": "AAA"}]}
        assert parse_images(google_payload, ResponseShape.OPENAI_DATA) == []

    def test_non_dict_payload(self):
        assert parse_images(["a"], ResponseShape.GENERIC_IMAGES) == []

    def test_empty_response(self):
        assert parse_images({}, ResponseShape.OPENAI_DATA) == []


# ==========================================================================
# Test: OpenAI-compatible adapter
# ==========================================================================


class TestOpenAICompatibleAdapter:
    def test_image_request(self, alpha):
        adapter = OpenAICompatibleAdapter()
        model = alpha.find_model("alpha-image")
        request = GenerationRequest(prompt="a red fox", aspect_ratio="16:9", num_outputs=2, seed=7)

        prepared = adapter.build_image_request(alpha, model, request, "sk-test")

        assert prepared.url == "https://alpha.test/v1/images/generations"
        assert prepared.headers["Authorization"] == "Bearer sk-test"
        assert prepared.params == {}
        assert prepared.json == {"model": "alpha-image", "prompt": "a red fox", "n": 2, "size": "1920x1080", "seed": 7}

    def test_image_request_with_reference_and_seed_zero(self, alpha):
        adapter = OpenAICompatibleAdapter()
        request = GenerationRequest(prompt="edit", reference_image="https://ref/1.png", seed=0)
        prepared = adapter.build_image_request(alpha, alpha.models[0], request, "sk")
        assert prepared.json["image"] == "https://ref/1.png"
        assert prepared.json["seed"] == 0
        assert prepared.json["n"] == 1
        assert prepared.json["size"] == "1024x1024"

    def test_chat_request(self, alpha):
        adapter = OpenAICompatibleAdapter()
        request = ChatRequest(
            messages=[ChatMessage("system", "be brief"), ChatMessage("user", "hi")],
            max_tokens=50,
            temperature=0.2,
        )
        prepared = adapter.build_chat_request(alpha, alpha.find_model("alpha-chat"), request, "sk")

        assert prepared.url == "https://alpha.test/v1/chat/completions"
        assert prepared.json == {
            "model": "alpha-chat",
            "messages": [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hi"}],
            "stream": False,
            "max_tokens": 50,
            "temperature": 0.2,
        }

    def test_parse_chat(self):
        reply = OpenAICompatibleAdapter().parse_chat(
            {"choices": [{"message": {"content": "hello"}}], "usage": {"total_tokens": 9}}
        )
        assert reply.content == "hello"
        assert reply.tokens_used == 9

    def test_parse_chat_without_choices(self):
        with pytest.raises(ProviderResponseError):
            OpenAICompatibleAdapter().parse_chat({"choices": []})

    def test_no_auth_header_for_auth_none(self):
        provider = make_test_providers()[2]
        assert provider.auth_type == AuthType.NONE
        prepared = OpenAICompatibleAdapter().build_image_request(
            provider, provider.models[0], GenerationRequest(prompt="x"), "ignored"
        )
        assert "Authorization" not in prepared.headers
        assert prepared.params == {}


# ==========================================================================
# Test: Google native adapter
# ==========================================================================


class TestGoogleNativeAdapter:
    def test_image_request_uses_query_key(self, beta):
        adapter = GoogleNativeAdapter()
        model = beta.find_model("models/beta-image")
        prepared = adapter.build_image_request(
            beta, model, GenerationRequest(prompt="a lighthouse", aspect_ratio="3:4", num_outputs=3), "g-key"
        )

        assert prepared.url == "https://beta.test/v1beta/models/beta-image:generateImages"
        assert prepared.params == {"key": "g-key"}
        assert "Authorization" not in prepared.headers
        assert prepared.json == {"prompt": "a lighthouse", "numberOfImages": 3, "aspectRatio": "3:4"}

    def test_chat_request_maps_roles(self, beta):
        request = ChatRequest(
            messages=[
                ChatMessage("system", "you are terse"),
                ChatMessage("user", "hi"),
                ChatMessage("assistant", "hello"),
                ChatMessage("user", "bye"),
            ],
            temperature=0.5,
            max_tokens=20,
        )
        prepared = GoogleNativeAdapter().build_chat_request(beta, beta.find_model("models/beta-chat"), request, "g")

        assert prepared.url == "https://beta.test/v1beta/models/beta-chat:generateContent"
        assert [c["role"] for c in prepared.json["contents"]] == ["user", "model", "user"]
        assert prepared.json["systemInstruction"] == {"parts": [{"text": "you are terse"}]}
        assert prepared.json["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 20}

    def test_parse_chat(self):
        reply = GoogleNativeAdapter().parse_chat(
            {
                "candidates": [{"content": {"parts": [{"text": "Hel"}, {"text": "lo"}]}}],
                "usageMetadata": {"totalTokenCount": 5},
            }
        )
        assert reply.content == "Hello"
        assert reply.tokens_used == 5

    def test_blocked_prompt(self):
        with pytest.raises(ProviderResponseError, match="SAFETY"):
            GoogleNativeAdapter().parse_chat({"promptFeedback": {"blockReason": "SAFETY"}})


# ==========================================================================
# Test: Adapter selection and sending
# ==========================================================================


class TestAdapterFactory:
    def test_registry_covers_families(self):
        assert set(ADAPTER_REGISTRY) == set(ProviderFamily)

    def test_get_adapter_by_family(self, alpha, beta):
        assert isinstance(get_adapter(alpha), OpenAICompatibleAdapter)
        assert isinstance(get_adapter(beta), GoogleNativeAdapter)

    def test_unknown_family_uses_openai_adapter(self):
        provider = Provider(id="x", base_url="https://x.test", family="something-new")
        assert isinstance(get_adapter(provider), OpenAICompatibleAdapter)


class TestSend:
    @pytest.mark.asyncio
    async def test_non_2xx_raises_truncated_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503, text="x" * 2000))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderHTTPError) as exc_info:
                await OpenAICompatibleAdapter().send(
                    client, PreparedRequest(url="https://p.test/images/generations", json={}), operation="Image generation"
                )

        err = exc_info.value
        assert err.status_code == 503
        assert len(err.body) == 500
        assert str(err).startswith("Image generation failed (503)")
        assert err.retryable is True

    @pytest.mark.asyncio
    async def test_client_error_not_retryable(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(401, text="bad key"))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderHTTPError) as exc_info:
                await OpenAICompatibleAdapter().send(client, PreparedRequest(url="https://p.test/x", json={}))
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_invalid_json_body(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(ProviderResponseError):
                await OpenAICompatibleAdapter().send(client, PreparedRequest(url="https://p.test/x", json={}))

    @pytest.mark.asyncio
    async def test_query_key_sent_as_param(self, beta):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"generatedImages": [{"base64": "AAA"}]})

        adapter = GoogleNativeAdapter()
        prepared = adapter.build_image_request(beta, beta.models[1], GenerationRequest(prompt="x"), "g-key")
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            data = await adapter.send(client, prepared)

        assert seen[0].url.params["key"] == "g-key"
        assert adapter.parse_images(beta, data) == ["AAA"]
