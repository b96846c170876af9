"""Provider adapters: protocol-level translation for each provider family.

Each adapter turns a generic GenerationRequest / ChatRequest into the
provider's HTTP request, and the provider's JSON back into generic fields.

Families:
  - OpenAI-compatible: POST {base}/images/generations, POST {base}/chat/completions
  - Google native:     POST {base}/{model}:generateImages, POST {base}/{model}:generateContent

Unknown families use the OpenAI-compatible adapter.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from imagine_gateway.gateway.errors import ProviderHTTPError, ProviderResponseError
from imagine_gateway.gateway.transport import DEFAULT_TIMEOUT_SECONDS, fetch_with_timeout
from imagine_gateway.gateway.types import (
    AuthType,
    ChatRequest,
    GenerationRequest,
    Model,
    Provider,
    ProviderFamily,
    ResponseShape,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Aspect ratio -> pixel size
# ---------------------------------------------------------------------------

ASPECT_RATIO_SIZES: dict[str, str] = {
    "1:1": "1024x1024",
    "16:9": "1920x1080",
    "9:16": "1080x1920",
    "4:3": "1024x768",
    "3:4": "768x1024",
    "21:9": "2560x1080",
    "2:3": "1365x2048",
    "3:2": "2048x1365",
    "4:5": "1024x1280",
    "5:4": "1280x1024",
}
DEFAULT_SIZE = "1024x1024"


def aspect_ratio_to_size(ratio: str | None) -> str:
    """Total mapping: unknown or missing ratios give 1024x1024."""
    return ASPECT_RATIO_SIZES.get(ratio or "1:1", DEFAULT_SIZE)


# ---------------------------------------------------------------------------
# Response parsing (tagged by ResponseShape)
# ---------------------------------------------------------------------------


def _generic_images(data: dict[str, Any]) -> list[str]:
    images = data.get("images")
    if not images:
        return []
    if isinstance(images, list):
        return [img for img in images if isinstance(img, str) and img]
    return [images] if isinstance(images, str) else []


def _google_images(data: dict[str, Any]) -> list[str]:
    images: list[str] = []
    for item in data.get("generatedImages") or []:
        payload = item.get("base64") or item.get("url") or (item.get("image") or {}).get("imageBytes")
        if payload:
            images.append(payload)
    return images


def _openai_images(data: dict[str, Any]) -> list[str]:
    images: list[str] = []
    for item in data.get("data") or []:
        payload = item.get("url") or item.get("b64_json")
        if payload:
            images.append(payload)
    # OpenAI-compatible gateways sometimes answer with a bare "images" field
    return images or _generic_images(data)


_IMAGE_PARSERS = {
    ResponseShape.GOOGLE_GENERATED_IMAGES: _google_images,
    ResponseShape.OPENAI_DATA: _openai_images,
    ResponseShape.GENERIC_IMAGES: _generic_images,
}


def parse_images(data: Any, shape: ResponseShape) -> list[str]:
    """Extract image payloads (URL or base64) using the provider's declared shape."""
    if not isinstance(data, dict):
        return []
    return _IMAGE_PARSERS[shape](data)


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


@dataclass
class PreparedRequest:
    """A provider-specific HTTP request, ready to send."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class ChatReply:
    content: str
    tokens_used: int | None = None


class BaseProviderAdapter(ABC):
    """Base class for all provider adapters."""

    family: ProviderFamily

    def _auth(self, provider: Provider, api_key: str) -> tuple[dict[str, str], dict[str, str]]:
        """Headers and query params carrying the credential."""
        headers = {"Content-Type": "application/json"}
        params: dict[str, str] = {}
        if not api_key or provider.auth_type == AuthType.NONE:
            return headers, params
        if provider.auth_type == AuthType.QUERY:
            params["key"] = api_key
        else:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers, params

    @abstractmethod
    def build_image_request(
        self, provider: Provider, model: Model, request: GenerationRequest, api_key: str
    ) -> PreparedRequest: ...

    @abstractmethod
    def build_chat_request(
        self, provider: Provider, model: Model, request: ChatRequest, api_key: str
    ) -> PreparedRequest: ...

    @abstractmethod
    def parse_chat(self, data: dict[str, Any]) -> ChatReply: ...

    def parse_images(self, provider: Provider, data: Any) -> list[str]:
        return parse_images(data, provider.shape)

    async def send(
        self,
        client: httpx.AsyncClient,
        prepared: PreparedRequest,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        operation: str = "API request",
    ) -> dict[str, Any]:
        """POST the prepared request under a deadline and decode the JSON body.

        Raises:
            NetworkTimeout / NetworkFailure: from the transport.
            ProviderHTTPError: non-2xx status (body truncated).
            ProviderResponseError: 2xx with a non-JSON body.
        """
        resp = await fetch_with_timeout(
            client,
            "POST",
            prepared.url,
            timeout=timeout,
            json=prepared.json,
            headers=prepared.headers,
            params=prepared.params or None,
        )

        if not resp.is_success:
            raise ProviderHTTPError(resp.status_code, resp.text, operation=operation)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderResponseError(f"{operation} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ProviderResponseError(f"{operation} returned unexpected payload")
        return data


# ---------------------------------------------------------------------------
# OpenAI-compatible adapter
# ---------------------------------------------------------------------------


class OpenAICompatibleAdapter(BaseProviderAdapter):
    """Standard OpenAI images/generations and chat/completions."""

    family = ProviderFamily.OPENAI

    def build_image_request(
        self, provider: Provider, model: Model, request: GenerationRequest, api_key: str
    ) -> PreparedRequest:
        headers, params = self._auth(provider, api_key)
        payload: dict[str, Any] = {
            "model": model.id,
            "prompt": request.prompt,
            "n": request.output_count,
            "size": aspect_ratio_to_size(request.aspect_ratio),
        }
        if request.reference_image:
            payload["image"] = request.reference_image
        if request.seed is not None:
            payload["seed"] = request.seed

        return PreparedRequest(
            url=f"{provider.base_url}/images/generations",
            json=payload,
            headers=headers,
            params=params,
        )

    def build_chat_request(
        self, provider: Provider, model: Model, request: ChatRequest, api_key: str
    ) -> PreparedRequest:
        headers, params = self._auth(provider, api_key)
        payload: dict[str, Any] = {
            "model": model.id,
            "messages": [{"role": m.role, "content": m.content} for m in request.messages],
            "stream": request.stream,
        }
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        return PreparedRequest(
            url=f"{provider.base_url}/chat/completions",
            json=payload,
            headers=headers,
            params=params,
        )

    def parse_chat(self, data: dict[str, Any]) -> ChatReply:
        choices = data.get("choices") or []
        if not choices:
            raise ProviderResponseError("Chat response contained no choices")
        content = (choices[0].get("message") or {}).get("content") or ""
        usage = data.get("usage") or {}
        return ChatReply(content=content, tokens_used=usage.get("total_tokens"))


# ---------------------------------------------------------------------------
# Google native adapter
# ---------------------------------------------------------------------------


class GoogleNativeAdapter(BaseProviderAdapter):
    """Google AI generateImages / generateContent."""

    family = ProviderFamily.GOOGLE

    def build_image_request(
        self, provider: Provider, model: Model, request: GenerationRequest, api_key: str
    ) -> PreparedRequest:
        headers, params = self._auth(provider, api_key)
        payload: dict[str, Any] = {
            "prompt": request.prompt,
            "numberOfImages": request.output_count,
        }
        if request.aspect_ratio:
            payload["aspectRatio"] = request.aspect_ratio

        return PreparedRequest(
            url=f"{provider.base_url}/{model.id}:generateImages",
            json=payload,
            headers=headers,
            params=params,
        )

    def build_chat_request(
        self, provider: Provider, model: Model, request: ChatRequest, api_key: str
    ) -> PreparedRequest:
        headers, params = self._auth(provider, api_key)

        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": m.content}],
            }
            for m in request.messages
            if m.role != "system"
        ]
        payload: dict[str, Any] = {"contents": contents}

        # System instruction (separate from contents in Gemini API)
        system_text = "\n\n".join(m.content for m in request.messages if m.role == "system")
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}

        generation_config: dict[str, Any] = {}
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        if request.max_tokens is not None:
            generation_config["maxOutputTokens"] = request.max_tokens
        if generation_config:
            payload["generationConfig"] = generation_config

        return PreparedRequest(
            url=f"{provider.base_url}/{model.id}:generateContent",
            json=payload,
            headers=headers,
            params=params,
        )

    def parse_chat(self, data: dict[str, Any]) -> ChatReply:
        candidates = data.get("candidates") or []
        if not candidates:
            block_reason = (data.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ProviderResponseError(f"Prompt blocked by provider: {block_reason}")
            raise ProviderResponseError("Chat response contained no candidates")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        content = "".join(p.get("text", "") for p in parts)
        usage = data.get("usageMetadata") or {}
        return ChatReply(content=content, tokens_used=usage.get("totalTokenCount"))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

ADAPTER_REGISTRY: dict[ProviderFamily, type[BaseProviderAdapter]] = {
    ProviderFamily.OPENAI: OpenAICompatibleAdapter,
    ProviderFamily.GOOGLE: GoogleNativeAdapter,
}


def get_adapter(provider: Provider) -> BaseProviderAdapter:
    """Adapter for the provider's family; unknown families get OpenAI-compatible."""
    adapter_cls = ADAPTER_REGISTRY.get(provider.family, OpenAICompatibleAdapter)
    return adapter_cls()
