import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from imagine_gateway.api.v1.router import api_v1_router
from imagine_gateway.core.config import settings, validate_settings_for_production
from imagine_gateway.core.logging import setup_logging
from imagine_gateway.core.metrics import PrometheusMiddleware, metrics_response
from imagine_gateway.core.sentry import init_sentry
from imagine_gateway.gateway.gateway import ImageGateway

# Configure logging before anything else
setup_logging()
init_sentry()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    validate_settings_for_production()
    if getattr(app.state, "gateway", None) is None:
        app.state.gateway = ImageGateway.from_settings(settings)
    logger.info(
        "Imagine gateway started (%d providers, max_concurrent=%d, timeout=%.0fs)",
        len(app.state.gateway.registry.all_providers()),
        app.state.gateway.queue.max_concurrent,
        app.state.gateway.timeout,
    )

    yield

    # Shutdown
    cleared = app.state.gateway.queue.clear()
    logger.info("Imagine gateway shut down (%d queued requests dropped)", cleared)


app = FastAPI(
    title="Imagine Gateway",
    description="Multi-provider image generation and chat gateway",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.app_debug else None,
    redoc_url="/api/redoc" if settings.app_debug else None,
)


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": f"{type(exc).__name__}: {exc}"})


app.add_middleware(PrometheusMiddleware)

# CORS: parse allowed_origins from settings (comma-separated)
_origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_v1_router)


@app.get("/api/v1/health")
async def health(request: Request):
    gateway: ImageGateway | None = getattr(request.app.state, "gateway", None)
    return {
        "status": "ok",
        "queue": gateway.queue.get_status() if gateway else None,
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_response()
