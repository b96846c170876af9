"""Core types and DTOs for the generation gateway."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ModelType(str, Enum):
    """Capability offered by a model."""

    CHAT = "chat"
    IMAGE = "image"
    VISION = "vision"


class AuthType(str, Enum):
    """How a provider expects its credential."""

    BEARER = "bearer"  # Authorization: Bearer <key>
    QUERY = "query"  # ?key=<key>
    NONE = "none"


class ProviderFamily(str, Enum):
    """Wire protocol family; selects the translation strategy."""

    OPENAI = "openai"  # OpenAI-compatible /images/generations, /chat/completions
    GOOGLE = "google"  # Google native :generateImages, :generateContent

    @classmethod
    def parse(cls, value: str | ProviderFamily | None) -> ProviderFamily:
        """Unknown families fall back to the OpenAI-compatible strategy."""
        if isinstance(value, ProviderFamily):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.OPENAI


class ResponseShape(str, Enum):
    """Image response layout, declared per provider instead of sniffed."""

    GOOGLE_GENERATED_IMAGES = "google_generated_images"  # generatedImages[].base64|url
    OPENAI_DATA = "openai_data"  # data[].url|b64_json
    GENERIC_IMAGES = "generic_images"  # images: [..] | ".."


_FAMILY_SHAPES: dict[ProviderFamily, ResponseShape] = {
    ProviderFamily.OPENAI: ResponseShape.OPENAI_DATA,
    ProviderFamily.GOOGLE: ResponseShape.GOOGLE_GENERATED_IMAGES,
}


# ---------------------------------------------------------------------------
# Registry entries
# ---------------------------------------------------------------------------


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key. Config accepts camelCase and snake_case."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class Model:
    """A single capability offered by a provider."""

    id: str
    type: ModelType = ModelType.IMAGE
    name: str = ""
    name_zh: str = ""
    supported_ratios: tuple[str, ...] = ()
    cost_per_unit: float = 0.0
    max_tokens: int | None = None
    description: str = ""

    def __post_init__(self) -> None:
        self.type = ModelType(self.type)
        self.supported_ratios = tuple(self.supported_ratios or ())
        if not self.name:
            self.name = self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Model:
        if not data.get("id"):
            raise ValueError("model definition requires an id")
        return cls(
            id=data["id"],
            type=ModelType(_pick(data, "type", default="image")),
            name=_pick(data, "name", default=""),
            name_zh=_pick(data, "nameZh", "name_zh", default=""),
            supported_ratios=tuple(_pick(data, "supportedRatios", "supported_ratios", default=())),
            cost_per_unit=float(_pick(data, "costPerUnit", "cost_per_unit", "costPer1k", default=0.0)),
            max_tokens=_pick(data, "maxTokens", "max_tokens"),
            description=_pick(data, "description", default=""),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "nameZh": self.name_zh,
            "costPerUnit": self.cost_per_unit,
        }
        if self.supported_ratios:
            data["supportedRatios"] = list(self.supported_ratios)
        if self.max_tokens is not None:
            data["maxTokens"] = self.max_tokens
        if self.description:
            data["description"] = self.description
        return data


@dataclass
class Provider:
    """An upstream vendor/endpoint family and its ordered models."""

    id: str
    base_url: str
    models: list[Model] = field(default_factory=list)
    name: str = ""
    name_zh: str = ""
    requires_auth: bool = True
    auth_type: AuthType = AuthType.BEARER
    family: ProviderFamily = ProviderFamily.OPENAI
    response_shape: ResponseShape | None = None
    description: str = ""
    custom: bool = False
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        self.auth_type = AuthType(self.auth_type)
        self.family = ProviderFamily.parse(self.family)
        if self.response_shape is not None:
            self.response_shape = ResponseShape(self.response_shape)
        self.base_url = self.base_url.rstrip("/")
        if not self.name:
            self.name = self.id

    @property
    def shape(self) -> ResponseShape:
        """Response shape: explicit override, else the family default."""
        return self.response_shape or _FAMILY_SHAPES[self.family]

    def find_model(self, model_id: str) -> Model | None:
        for model in self.models:
            if model.id == model_id:
                return model
        return None

    def first_model_of_type(self, model_type: ModelType) -> Model | None:
        for model in self.models:
            if model.type == model_type:
                return model
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Provider:
        """Build a provider from the external config form.

        ``{id, baseUrl, requiresAuth, authType, models: [{id, type, ...}]}``
        """
        if not data.get("id"):
            raise ValueError("provider definition requires an id")
        base_url = _pick(data, "baseUrl", "base_url")
        if not base_url:
            raise ValueError(f"provider {data['id']} requires a baseUrl")

        auth_type = _pick(data, "authType", "auth_type", default="bearer")
        if auth_type == "header":
            auth_type = "bearer"

        shape = _pick(data, "responseShape", "response_shape")
        created_at = _pick(data, "createdAt", "created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)

        return cls(
            id=data["id"],
            base_url=base_url,
            models=[Model.from_dict(m) for m in data.get("models", [])],
            name=_pick(data, "name", default=""),
            name_zh=_pick(data, "nameZh", "name_zh", default=""),
            requires_auth=bool(_pick(data, "requiresAuth", "requires_auth", default=True)),
            auth_type=AuthType(auth_type),
            family=ProviderFamily.parse(_pick(data, "family", default="openai")),
            response_shape=ResponseShape(shape) if shape else None,
            description=_pick(data, "description", default=""),
            custom=bool(data.get("custom", False)),
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "nameZh": self.name_zh,
            "baseUrl": self.base_url,
            "requiresAuth": self.requires_auth,
            "authType": self.auth_type.value,
            "family": self.family.value,
            "models": [m.to_dict() for m in self.models],
            "custom": self.custom,
        }
        if self.response_shape is not None:
            data["responseShape"] = self.response_shape.value
        if self.description:
            data["description"] = self.description
        if self.created_at is not None:
            data["createdAt"] = self.created_at.isoformat()
        return data


# ---------------------------------------------------------------------------
# Image generation: generic request / result
# ---------------------------------------------------------------------------


@dataclass
class GenerationRequest:
    """Provider-agnostic image generation request. Only ``prompt`` is required."""

    prompt: str
    model: str | None = None
    aspect_ratio: str | None = None
    reference_image: str | None = None  # URL or base64 payload
    seed: int | None = None
    num_outputs: int | None = None

    @property
    def output_count(self) -> int:
        return self.num_outputs or 1


@dataclass
class GenerationMetadata:
    model: str
    provider: str
    duration_ms: int = 0
    cost: float = 0.0


@dataclass
class GenerationResult:
    """Caller-facing result: exactly one of ``images`` / ``error`` is set."""

    success: bool
    images: list[str] | None = None
    error: str | None = None
    metadata: GenerationMetadata | None = None

    @classmethod
    def ok(cls, images: list[str], metadata: GenerationMetadata) -> GenerationResult:
        return cls(success=True, images=list(images), metadata=metadata)

    @classmethod
    def fail(cls, error: str) -> GenerationResult:
        return cls(success=False, error=error or "Unknown error occurred")


# ---------------------------------------------------------------------------
# Chat: generic request / result
# ---------------------------------------------------------------------------


@dataclass
class ChatMessage:
    role: str  # "system" | "user" | "assistant"
    content: str


@dataclass
class ChatRequest:
    messages: list[ChatMessage]
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    stream: bool = False


@dataclass
class ChatMetadata:
    model: str
    provider: str
    duration_ms: int = 0
    tokens_used: int | None = None


@dataclass
class ChatResult:
    success: bool
    content: str | None = None
    error: str | None = None
    metadata: ChatMetadata | None = None

    @classmethod
    def ok(cls, content: str, metadata: ChatMetadata) -> ChatResult:
        return cls(success=True, content=content, metadata=metadata)

    @classmethod
    def fail(cls, error: str) -> ChatResult:
        return cls(success=False, error=error or "Unknown error")


@dataclass
class ConnectionCheck:
    """Outcome of a provider connection test."""

    success: bool
    message: str


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RateLimitRule:
    """Named sliding-window rule. Registered once, never mutated."""

    name: str
    max_requests: int
    window_seconds: float
    message: str | None = None


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_in: float = 0.0  # seconds until the oldest sample leaves the window
    message: str | None = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
