"""Image generation and chat schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from imagine_gateway.gateway.types import (
    ChatMessage,
    ChatRequest,
    ChatResult,
    GenerationRequest,
    GenerationResult,
)


class GenerateImageRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=4000)
    model: str | None = None
    aspect_ratio: str | None = Field(None, examples=["16:9"])
    reference_image: str | None = None  # URL or base64
    seed: int | None = None
    num_outputs: int | None = Field(None, ge=1, le=4)

    def to_domain(self) -> GenerationRequest:
        return GenerationRequest(**self.model_dump())


class GenerationMetadataOut(BaseModel):
    model: str
    provider: str
    duration_ms: int = Field(..., alias="durationMs")
    cost: float

    model_config = {"from_attributes": True, "populate_by_name": True}


class GenerateImageResponse(BaseModel):
    success: bool
    images: list[str] | None = None
    error: str | None = None
    metadata: GenerationMetadataOut | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerateImageResponse":
        metadata = None
        if result.metadata is not None:
            metadata = GenerationMetadataOut(
                model=result.metadata.model,
                provider=result.metadata.provider,
                duration_ms=result.metadata.duration_ms,
                cost=result.metadata.cost,
            )
        return cls(success=result.success, images=result.images, error=result.error, metadata=metadata)


class ChatMessageIn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatCompletionRequest(BaseModel):
    messages: list[ChatMessageIn] = Field(..., min_length=1)
    model: str | None = None
    max_tokens: int | None = Field(None, ge=1)
    temperature: float | None = Field(None, ge=0.0, le=2.0)

    def to_domain(self) -> ChatRequest:
        return ChatRequest(
            messages=[ChatMessage(role=m.role, content=m.content) for m in self.messages],
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )


class ChatMetadataOut(BaseModel):
    model: str
    provider: str
    duration_ms: int = Field(..., alias="durationMs")
    tokens_used: int | None = Field(None, alias="tokensUsed")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ChatCompletionResponse(BaseModel):
    success: bool
    content: str | None = None
    error: str | None = None
    metadata: ChatMetadataOut | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_result(cls, result: ChatResult) -> "ChatCompletionResponse":
        metadata = None
        if result.metadata is not None:
            metadata = ChatMetadataOut(
                model=result.metadata.model,
                provider=result.metadata.provider,
                duration_ms=result.metadata.duration_ms,
                tokens_used=result.metadata.tokens_used,
            )
        return cls(success=result.success, content=result.content, error=result.error, metadata=metadata)
