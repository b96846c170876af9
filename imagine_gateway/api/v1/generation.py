"""Generation endpoints.

Provides:
  - POST /generate: image generation through the gateway
  - POST /chat: chat completion through the gateway

Both always answer 200 with a structured result; failures carry ``error``.
Unset fields are omitted and metadata keys are camelCase (``durationMs``).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from imagine_gateway.core.dependencies import get_gateway, get_provider_key, get_subject_key
from imagine_gateway.gateway.gateway import ImageGateway
from imagine_gateway.schemas.generation import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    GenerateImageRequest,
    GenerateImageResponse,
)

router = APIRouter(tags=["generation"])


@router.post("/generate", response_model=GenerateImageResponse, response_model_exclude_none=True)
async def generate_image(
    body: GenerateImageRequest,
    gateway: ImageGateway = Depends(get_gateway),
    provider_key: str | None = Depends(get_provider_key),
    subject_key: str | None = Depends(get_subject_key),
):
    result = await gateway.generate_image(body.to_domain(), api_key=provider_key, subject_key=subject_key)
    return GenerateImageResponse.from_result(result)


@router.post("/chat", response_model=ChatCompletionResponse, response_model_exclude_none=True)
async def chat(
    body: ChatCompletionRequest,
    gateway: ImageGateway = Depends(get_gateway),
    provider_key: str | None = Depends(get_provider_key),
    subject_key: str | None = Depends(get_subject_key),
):
    result = await gateway.chat(body.to_domain(), api_key=provider_key, subject_key=subject_key)
    return ChatCompletionResponse.from_result(result)
