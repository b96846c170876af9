"""Gateway introspection and admin endpoints."""

from fastapi import APIRouter, Depends

from imagine_gateway.core.dependencies import get_gateway
from imagine_gateway.gateway.gateway import ImageGateway

router = APIRouter(prefix="/gateway", tags=["gateway"])


@router.get("/status")
async def gateway_status(gateway: ImageGateway = Depends(get_gateway)):
    return gateway.get_status()


@router.post("/queue/clear")
async def clear_queue(gateway: ImageGateway = Depends(get_gateway)):
    """Drop every queued (not yet started) request. Running calls finish."""
    return {"cleared": gateway.queue.clear()}
