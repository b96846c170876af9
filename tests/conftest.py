import pytest
from helpers import FakeClock, ProviderStub, make_test_providers

from imagine_gateway.gateway.cache import ResponseCache
from imagine_gateway.gateway.gateway import ImageGateway
from imagine_gateway.gateway.rate_limiter import SlidingWindowRateLimiter
from imagine_gateway.gateway.registry import ProviderRegistry
from imagine_gateway.gateway.request_queue import RequestQueue


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return ProviderRegistry(presets=make_test_providers(), default_keys={"alpha": "env-alpha"})


@pytest.fixture
def stub():
    return ProviderStub()


@pytest.fixture
def make_gateway(registry):
    """Factory for gateways wired to a ProviderStub, with no rate rules by default."""

    def _make(
        stub: ProviderStub,
        *,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        max_concurrent: int = 3,
        timeout: float = 5.0,
        cache: ResponseCache | None = None,
    ) -> ImageGateway:
        return ImageGateway(
            registry=registry,
            rate_limiter=rate_limiter or SlidingWindowRateLimiter(),
            queue=RequestQueue(max_concurrent=max_concurrent),
            cache=cache or ResponseCache(),
            timeout=timeout,
            default_image_model="alpha-image",
            default_chat_model="alpha-chat",
            transport=stub.transport,
        )

    return _make
