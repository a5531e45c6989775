import asyncio
import logging
from fastapi import FastAPI
from fakeredis.aioredis import FakeRedis

from backend.app_setup import lifespan as lifespan_mod


def _init(app):
    asyncio.run(lifespan_mod._init_rate_limiter(app, logging.getLogger("test")))

def test_disabled_for_tests(monkeypatch):
    monkeypatch.setenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
    app = FastAPI()
    _init(app)
    assert app.state.rate_limit_enabled is False

def test_fake_redis_backend_enables_rate_limit(monkeypatch):
    seen = {}

    async def fake_init(r):
        seen["redis"] = r

    monkeypatch.delenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", raising=False)
    monkeypatch.setenv("USE_FAKE_REDIS_FOR_TESTS", "1")
    monkeypatch.setattr(lifespan_mod.FastAPILimiter, "init", fake_init)

    app = FastAPI()
    _init(app)
    assert app.state.rate_limit_enabled is True
    assert isinstance(seen["redis"], FakeRedis)

def test_init_failure_without_fallback_disables(monkeypatch):
    async def failing_init(r):
        raise ConnectionError("redis down")

    monkeypatch.delenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", raising=False)
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setenv("USE_FAKE_REDIS_FOR_TESTS", "1")
    monkeypatch.setattr(lifespan_mod.FastAPILimiter, "init", failing_init)

    app = FastAPI()
    _init(app)
    assert app.state.rate_limit_enabled is False

    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    _init(app)
    assert app.state.rate_limit_enabled is True

def test_unconfigured_gateway_is_reported(monkeypatch, caplog):
    monkeypatch.delenv("ASTIMPAY_SHIPPING_ONLY_API_KEY")
    with caplog.at_level(logging.INFO, logger="test"):
        lifespan_mod._log_gateways(logging.getLogger("test"))
    messages = [r.getMessage() for r in caplog.records]
    assert any("astimpay enabled" in m for m in messages)
    assert any("astimpay_shipping_only disabled" in m for m in messages)
