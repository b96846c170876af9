from fastapi import APIRouter

from imagine_gateway.api.v1.gateway import router as gateway_router
from imagine_gateway.api.v1.generation import router as generation_router
from imagine_gateway.api.v1.providers import router as providers_router

api_v1_router = APIRouter(prefix="/api/v1")
api_v1_router.include_router(generation_router)
api_v1_router.include_router(providers_router)
api_v1_router.include_router(gateway_router)
