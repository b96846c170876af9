"""Shared test doubles: a fake clock, a recording provider stub, canned payloads."""

import asyncio
import json
from collections.abc import Callable

import httpx

from imagine_gateway.gateway.types import AuthType, Model, ModelType, Provider, ProviderFamily


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ProviderStub:
    """httpx.MockTransport handler that records requests.

    ``responder`` returns an httpx.Response (or a coroutine resolving to one);
    by default every call answers with an OpenAI-style image payload.
    """

    def __init__(self, responder: Callable | None = None):
        self.requests: list[httpx.Request] = []
        self.active = 0
        self.peak_active = 0
        self._responder = responder or (lambda request: openai_images_response(["https://img.test/1.png"]))

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            response = self._responder(request)
            if asyncio.iscoroutine(response):
                response = await response
            return response
        finally:
            self.active -= 1

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def openai_images_response(urls: list[str], status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json={"data": [{"url": u} for u in urls]})


def google_images_response(payloads: list[str]) -> httpx.Response:
    return httpx.Response(200, json={"generatedImages": [{"base64": p} for p in payloads]})


def openai_chat_response(content: str = "Hello there", total_tokens: int = 12) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 4, "completion_tokens": 8, "total_tokens": total_tokens},
        },
    )


def google_chat_response(text: str = "Hi from Gemini", total_tokens: int = 7) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}],
            "usageMetadata": {"totalTokenCount": total_tokens},
        },
    )


async def never_respond(request: httpx.Request) -> httpx.Response:
    await asyncio.Event().wait()
    raise AssertionError("unreachable")


def make_test_providers() -> list[Provider]:
    """Providers alpha and beta both expose ``shared-model``; alpha is registered first."""
    return [
        Provider(
            id="alpha",
            name="Alpha Images",
            base_url="https://alpha.test/v1",
            requires_auth=True,
            auth_type=AuthType.BEARER,
            family=ProviderFamily.OPENAI,
            models=[
                Model("alpha-image", ModelType.IMAGE, cost_per_unit=0.5),
                Model("shared-model", ModelType.IMAGE, cost_per_unit=0.1),
                Model("alpha-chat", ModelType.CHAT),
            ],
        ),
        Provider(
            id="beta",
            name="Beta Native",
            base_url="https://beta.test/v1beta",
            requires_auth=True,
            auth_type=AuthType.QUERY,
            family=ProviderFamily.GOOGLE,
            models=[
                Model("shared-model", ModelType.IMAGE, cost_per_unit=0.9),
                Model("models/beta-image", ModelType.IMAGE, cost_per_unit=0.25),
                Model("models/beta-chat", ModelType.CHAT),
            ],
        ),
        Provider(
            id="open",
            name="Open Local",
            base_url="http://localhost:9000/v1",
            requires_auth=False,
            auth_type=AuthType.NONE,
            models=[Model("open-image", ModelType.IMAGE)],
        ),
    ]
