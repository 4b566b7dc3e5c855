"""
Tests for trust_engine.services.path_invalidation
"""

from __future__ import annotations

import json

import httpx
import pytest

from trust_engine.services.path_invalidation import WebhookPathInvalidator, paths_for_contribution
from tests.helpers import make_settings


def test_paths_for_contribution():
    assert paths_for_contribution("e-1") == ["/entities/e-1"]
    assert paths_for_contribution("e-1", "p-1") == ["/entities/e-1", "/contributions/p-1"]


@pytest.mark.asyncio
async def test_skips_when_webhook_unset():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    invalidator = WebhookPathInvalidator(make_settings(), transport=httpx.MockTransport(handler))
    await invalidator.invalidate(["/entities/e-1"])


@pytest.mark.asyncio
async def test_posts_paths_with_secret():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["secret"] = request.headers.get("X-Revalidate-Secret")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"revalidated": True})

    settings = make_settings(
        REVALIDATE_WEBHOOK_URL="https://web.example.com/api/revalidate",
        REVALIDATE_WEBHOOK_SECRET="shh",
    )
    await WebhookPathInvalidator(settings, transport=httpx.MockTransport(handler)).invalidate(
        ["/entities/e-1", "/contributions/p-1"]
    )

    assert seen["url"] == "https://web.example.com/api/revalidate"
    assert seen["secret"] == "shh"
    assert seen["body"] == {"paths": ["/entities/e-1", "/contributions/p-1"]}


@pytest.mark.asyncio
async def test_webhook_failure_is_swallowed():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    settings = make_settings(REVALIDATE_WEBHOOK_URL="https://web.example.com/api/revalidate")
    await WebhookPathInvalidator(settings, transport=httpx.MockTransport(handler)).invalidate(["/x"])
