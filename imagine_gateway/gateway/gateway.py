"""Generation gateway: orchestrator integrating all gateway components.

Main entry point for image generation and chat:
  1. Checks the per-action rate limit rule
  2. Resolves provider/model and credential via the ProviderRegistry
  3. Serves deterministic (seeded) repeats from the response cache
  4. Enqueues the work on the bounded-concurrency RequestQueue
  5. Translates the request with the provider family's adapter
  6. Sends it through the deadline-bound transport
  7. Normalizes the provider response into a generic result

Every GatewayError is converted into ``{success: False, error}`` here;
no exception crosses into caller code.

Usage:
    gateway = ImageGateway.from_settings(settings)
    result = await gateway.generate_image(GenerationRequest(prompt="a cat"))
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
import math
import time
from typing import TYPE_CHECKING, Any

import httpx

from imagine_gateway.core.metrics import GATEWAY_CALL_DURATION, GATEWAY_CALLS, RATE_LIMIT_REJECTIONS
from imagine_gateway.gateway.adapters import get_adapter
from imagine_gateway.gateway.cache import ResponseCache
from imagine_gateway.gateway.errors import (
    CredentialMissing,
    GatewayError,
    InvalidRequest,
    ProviderHTTPError,
    ProviderResponseError,
    RateLimitExceeded,
)
from imagine_gateway.gateway.presets import DEFAULT_CHAT_MODEL, DEFAULT_IMAGE_MODEL
from imagine_gateway.gateway.rate_limiter import CHAT, IMAGE_GENERATION, SlidingWindowRateLimiter
from imagine_gateway.gateway.registry import ProviderRegistry
from imagine_gateway.gateway.request_queue import RequestQueue
from imagine_gateway.gateway.transport import DEFAULT_TIMEOUT_SECONDS
from imagine_gateway.gateway.types import (
    ChatMessage,
    ChatMetadata,
    ChatRequest,
    ChatResult,
    ConnectionCheck,
    GenerationMetadata,
    GenerationRequest,
    GenerationResult,
    Model,
    ModelType,
    Provider,
)

if TYPE_CHECKING:
    from imagine_gateway.core.config import Settings

logger = logging.getLogger(__name__)


class ImageGateway:
    """Coordinator over registry, rate limiter, queue and cache.

    Holds no request state of its own; each collaborator owns its state.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        queue: RequestQueue | None = None,
        cache: ResponseCache | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        default_image_model: str = DEFAULT_IMAGE_MODEL,
        default_chat_model: str = DEFAULT_CHAT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            registry: Provider catalogue and credential resolution
            rate_limiter: Rule-based throttle; an empty limiter allows everything
            queue: Concurrency bound for outbound calls
            cache: Cache for seeded (deterministic) image generations
            timeout: Deadline for each provider call, in seconds
            transport: httpx transport override (tests use httpx.MockTransport)
        """
        self.registry = registry
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self.queue = queue or RequestQueue()
        self.cache = cache or ResponseCache()
        self.timeout = timeout
        self.default_image_model = default_image_model
        self.default_chat_model = default_chat_model
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> ImageGateway:
        from imagine_gateway.gateway.rate_limiter import build_default_rate_limiter

        return cls(
            registry=kwargs.pop("registry", None) or ProviderRegistry.from_settings(settings),
            rate_limiter=kwargs.pop("rate_limiter", None) or build_default_rate_limiter(settings),
            queue=kwargs.pop("queue", None) or RequestQueue(settings.queue_max_concurrent),
            cache=kwargs.pop("cache", None)
            or ResponseCache(max_size=settings.cache_max_size, default_ttl=settings.cache_ttl_seconds),
            timeout=settings.request_timeout_seconds,
            default_image_model=settings.default_image_model,
            default_chat_model=settings.default_chat_model,
            **kwargs,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def _check_rate(self, rule: str, subject_key: str | None) -> None:
        decision = self.rate_limiter.check(rule, subject_key)
        if decision.allowed:
            return
        RATE_LIMIT_REJECTIONS.labels(rule=rule).inc()
        reset_seconds = math.ceil(decision.reset_in)
        message = decision.message or f"Too many requests, retry in {reset_seconds}s"
        raise RateLimitExceeded(message, rule=rule, reset_in=decision.reset_in)

    def _resolve(self, model_id: str, api_key: str | None) -> tuple[Provider, Model, str]:
        provider, model = self.registry.resolve_model(model_id)
        key = self.registry.resolve_credential(provider.id, api_key)
        if provider.requires_auth and not key:
            raise CredentialMissing(provider.id, provider.name)
        return provider, model, key

    def _provider_label(self, model_id: str | None) -> str:
        found = self.registry.find_model(model_id) if model_id else None
        return found[0].id if found else "unknown"

    # ------------------------------------------------------------------
    # Image generation
    # ------------------------------------------------------------------

    @staticmethod
    def _cache_key(request: GenerationRequest, provider: Provider, model: Model, key: str) -> str | None:
        """Only seeded requests are deterministic enough to cache; keyed per credential."""
        if request.seed is None:
            return None
        reference = request.reference_image or ""
        fingerprint = json.dumps(
            {
                "provider": provider.id,
                "model": model.id,
                "credential": hashlib.sha256(key.encode()).hexdigest() if key else "",
                "prompt": request.prompt,
                "ratio": request.aspect_ratio or "",
                "seed": request.seed,
                "n": request.output_count,
                "ref": hashlib.sha256(reference.encode()).hexdigest() if reference else "",
            },
            sort_keys=True,
        )
        return "image:" + hashlib.sha256(fingerprint.encode()).hexdigest()

    async def generate_image(
        self,
        request: GenerationRequest,
        api_key: str | None = None,
        subject_key: str | None = None,
    ) -> GenerationResult:
        """Generate images for a generic request. Never raises.

        Args:
            request: Generic request (only ``prompt`` is required)
            api_key: User-supplied provider key; beats stored and env keys
            subject_key: Rate limit subject (e.g. user id); defaults to rule-wide
        """
        model_id = request.model or self.default_image_model
        try:
            if not request.prompt or not request.prompt.strip():
                raise InvalidRequest("Prompt is required")

            self._check_rate(IMAGE_GENERATION, subject_key)
            provider, model, key = self._resolve(model_id, api_key)

            cache_key = self._cache_key(request, provider, model, key)
            if cache_key is not None:
                cached = self.cache.get(cache_key)
                if cached is not None:
                    GATEWAY_CALLS.labels("image", cached.metadata.provider, "cache_hit").inc()
                    return dataclasses.replace(cached, images=list(cached.images))

            result = await self.queue.add(lambda: self._generate(request, provider, model, key))

            if cache_key is not None:
                self.cache.set(cache_key, result)
            return result

        except GatewayError as e:
            logger.warning("Image generation failed for model %s: %s", model_id, e)
            GATEWAY_CALLS.labels("image", self._provider_label(model_id), type(e).__name__).inc()
            return GenerationResult.fail(str(e))
        except Exception as e:
            logger.exception("Unexpected image generation error for model %s", model_id)
            GATEWAY_CALLS.labels("image", self._provider_label(model_id), "unexpected").inc()
            return GenerationResult.fail(str(e) or type(e).__name__)

    async def _generate(
        self, request: GenerationRequest, provider: Provider, model: Model, key: str
    ) -> GenerationResult:
        start = time.monotonic()
        adapter = get_adapter(provider)
        prepared = adapter.build_image_request(provider, model, request, key)

        logger.info(
            "Generating %d image(s) with %s/%s",
            request.output_count,
            provider.id,
            model.id,
            extra={"provider": provider.id, "model": model.id},
        )

        async with self._client() as client:
            data = await adapter.send(client, prepared, timeout=self.timeout, operation="Image generation")

        images = adapter.parse_images(provider, data)
        if not images:
            raise ProviderResponseError(f"Provider {provider.id} returned no images")

        elapsed = time.monotonic() - start
        GATEWAY_CALL_DURATION.labels("image", provider.id).observe(elapsed)
        GATEWAY_CALLS.labels("image", provider.id, "success").inc()

        return GenerationResult.ok(
            images,
            GenerationMetadata(
                model=model.id,
                provider=provider.id,
                duration_ms=int(elapsed * 1000),
                cost=model.cost_per_unit * request.output_count,
            ),
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def chat(
        self,
        request: ChatRequest,
        api_key: str | None = None,
        subject_key: str | None = None,
    ) -> ChatResult:
        """Run a chat completion. Never raises."""
        model_id = request.model or self.default_chat_model
        try:
            if not request.messages:
                raise InvalidRequest("At least one message is required")

            self._check_rate(CHAT, subject_key)
            return await self.queue.add(lambda: self._chat(request, model_id, api_key))

        except GatewayError as e:
            logger.warning("Chat failed for model %s: %s", model_id, e)
            GATEWAY_CALLS.labels("chat", self._provider_label(model_id), type(e).__name__).inc()
            return ChatResult.fail(str(e))
        except Exception as e:
            logger.exception("Unexpected chat error for model %s", model_id)
            GATEWAY_CALLS.labels("chat", self._provider_label(model_id), "unexpected").inc()
            return ChatResult.fail(str(e) or type(e).__name__)

    async def _chat(self, request: ChatRequest, model_id: str, api_key: str | None) -> ChatResult:
        start = time.monotonic()
        provider, model, key = self._resolve(model_id, api_key)
        adapter = get_adapter(provider)
        prepared = adapter.build_chat_request(provider, model, request, key)

        async with self._client() as client:
            data = await adapter.send(client, prepared, timeout=self.timeout, operation="Chat request")

        reply = adapter.parse_chat(data)
        elapsed = time.monotonic() - start
        GATEWAY_CALL_DURATION.labels("chat", provider.id).observe(elapsed)
        GATEWAY_CALLS.labels("chat", provider.id, "success").inc()

        return ChatResult.ok(
            reply.content,
            ChatMetadata(
                model=model.id,
                provider=provider.id,
                duration_ms=int(elapsed * 1000),
                tokens_used=reply.tokens_used,
            ),
        )

    # ------------------------------------------------------------------
    # Admin / introspection
    # ------------------------------------------------------------------

    async def test_connection(self, provider_id: str, api_key: str | None = None) -> ConnectionCheck:
        """Probe a provider with a one-word chat against its first chat model.

        Bypasses rate limits and the queue; the deadline still applies.
        """
        provider = self.registry.get_provider(provider_id)
        if provider is None:
            return ConnectionCheck(success=False, message="Provider not found")

        chat_model = provider.first_model_of_type(ModelType.CHAT)
        if chat_model is None:
            return ConnectionCheck(success=False, message="No chat model available for testing")

        key = self.registry.resolve_credential(provider.id, api_key)
        if provider.requires_auth and not key:
            return ConnectionCheck(success=False, message=str(CredentialMissing(provider.id, provider.name)))

        adapter = get_adapter(provider)
        hello = ChatRequest(messages=[ChatMessage(role="user", content="Hello")], max_tokens=10)

        try:
            prepared = adapter.build_chat_request(provider, chat_model, hello, key)
            async with self._client() as client:
                await adapter.send(client, prepared, timeout=self.timeout, operation="Connection test")
        except ProviderHTTPError as e:
            return ConnectionCheck(success=False, message=f"Failed: {e.body[:100]}")
        except GatewayError as e:
            return ConnectionCheck(success=False, message=str(e)[:100])
        except Exception as e:
            logger.exception("Connection test to %s failed unexpectedly", provider.id)
            return ConnectionCheck(success=False, message=str(e)[:100] or "Connection failed")

        logger.info("Connection test to %s succeeded", provider.id)
        return ConnectionCheck(success=True, message="Connection successful")

    def list_models(self, model_type: ModelType | str) -> list[tuple[Provider, Model]]:
        return self.registry.all_models_of_type(model_type)

    def get_status(self) -> dict[str, Any]:
        """Get comprehensive gateway status."""
        return {
            "queue": self.queue.get_status(),
            "rate_limits": self.rate_limiter.get_stats(),
            "cache": {k: v for k, v in self.cache.get_stats().items() if k != "keys"},
            "providers": [p.id for p in self.registry.all_providers()],
            "credentials": self.registry.api_key_status(),
        }
