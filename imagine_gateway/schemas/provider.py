"""Provider catalogue and admin schemas."""

from typing import Any

from pydantic import BaseModel, Field

from imagine_gateway.gateway.types import Model, ModelType, Provider


class ModelDefinition(BaseModel):
    id: str = Field(..., min_length=1)
    type: ModelType = ModelType.IMAGE
    name: str = ""
    supported_ratios: list[str] = Field(default_factory=list)
    cost_per_unit: float = Field(0.0, ge=0.0)
    max_tokens: int | None = None


class ProviderCreateRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[A-Za-z0-9._-]+$")
    name: str = ""
    base_url: str = Field(..., min_length=1)
    requires_auth: bool = True
    auth_type: str = Field("bearer", pattern=r"^(bearer|query|none)$")
    family: str = "openai"
    models: list[ModelDefinition] = Field(default_factory=list)

    def to_definition(self) -> dict[str, Any]:
        return self.model_dump()


class ModelOut(BaseModel):
    id: str
    type: ModelType
    name: str
    supported_ratios: list[str]
    cost_per_unit: float

    @classmethod
    def from_model(cls, model: Model) -> "ModelOut":
        return cls(
            id=model.id,
            type=model.type,
            name=model.name,
            supported_ratios=list(model.supported_ratios),
            cost_per_unit=model.cost_per_unit,
        )


class ProviderOut(BaseModel):
    id: str
    name: str
    base_url: str
    requires_auth: bool
    auth_type: str
    family: str
    custom: bool
    models: list[ModelOut]

    @classmethod
    def from_provider(cls, provider: Provider) -> "ProviderOut":
        return cls(
            id=provider.id,
            name=provider.name,
            base_url=provider.base_url,
            requires_auth=provider.requires_auth,
            auth_type=provider.auth_type.value,
            family=provider.family.value,
            custom=provider.custom,
            models=[ModelOut.from_model(m) for m in provider.models],
        )


class ModelListItem(BaseModel):
    provider_id: str
    provider_name: str
    model: ModelOut


class ApiKeyUpdate(BaseModel):
    api_key: str = ""  # empty clears the stored key


class ConnectionTestRequest(BaseModel):
    api_key: str | None = None


class ConnectionTestResponse(BaseModel):
    success: bool
    message: str


class ConfigImportResponse(BaseModel):
    imported: bool
