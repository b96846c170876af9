"""Provider catalogue and admin endpoints: list, add, remove, test, keys, backup."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from imagine_gateway.core.dependencies import get_gateway
from imagine_gateway.gateway.errors import ProviderConflict
from imagine_gateway.gateway.gateway import ImageGateway
from imagine_gateway.gateway.types import ModelType
from imagine_gateway.schemas.provider import (
    ApiKeyUpdate,
    ConfigImportResponse,
    ConnectionTestRequest,
    ConnectionTestResponse,
    ModelListItem,
    ModelOut,
    ProviderCreateRequest,
    ProviderOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["providers"])


@router.get("/providers", response_model=list[ProviderOut])
async def list_providers(gateway: ImageGateway = Depends(get_gateway)):
    """Presets first, then user-added providers in registration order."""
    return [ProviderOut.from_provider(p) for p in gateway.registry.all_providers()]


@router.get("/models", response_model=list[ModelListItem])
async def list_models(
    model_type: ModelType = Query(ModelType.IMAGE, alias="type"),
    gateway: ImageGateway = Depends(get_gateway),
):
    return [
        ModelListItem(provider_id=provider.id, provider_name=provider.name, model=ModelOut.from_model(model))
        for provider, model in gateway.list_models(model_type)
    ]


@router.post("/providers", response_model=ProviderOut, status_code=201)
async def add_provider(body: ProviderCreateRequest, gateway: ImageGateway = Depends(get_gateway)):
    try:
        provider = gateway.registry.add_provider(body.to_definition())
    except ProviderConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProviderOut.from_provider(provider)


@router.delete("/providers/{provider_id}", status_code=204)
async def remove_provider(provider_id: str, gateway: ImageGateway = Depends(get_gateway)):
    try:
        removed = gateway.registry.remove_provider(provider_id)
    except ProviderConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Provider not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/providers/{provider_id}/key", status_code=204)
async def set_provider_key(
    provider_id: str,
    body: ApiKeyUpdate,
    gateway: ImageGateway = Depends(get_gateway),
):
    """Store (or clear, with an empty key) the user key for a provider."""
    if gateway.registry.get_provider(provider_id) is None:
        raise HTTPException(status_code=404, detail="Provider not found")
    gateway.registry.set_api_key(provider_id, body.api_key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/providers/{provider_id}/test", response_model=ConnectionTestResponse)
async def test_provider_connection(
    provider_id: str,
    body: ConnectionTestRequest | None = None,
    gateway: ImageGateway = Depends(get_gateway),
):
    check = await gateway.test_connection(provider_id, api_key=body.api_key if body else None)
    return ConnectionTestResponse(success=check.success, message=check.message)


@router.get("/providers/config/export")
async def export_provider_config(gateway: ImageGateway = Depends(get_gateway)) -> dict[str, Any]:
    return gateway.registry.export_config()


@router.post("/providers/config/import", response_model=ConfigImportResponse)
async def import_provider_config(
    payload: dict[str, Any] = Body(...),
    gateway: ImageGateway = Depends(get_gateway),
):
    imported = gateway.registry.import_config(payload)
    if not imported:
        raise HTTPException(status_code=400, detail="Invalid provider configuration")
    return ConfigImportResponse(imported=True)
