"""Tests for the async event bus."""

import pytest

from core.events import MODEL_DELETED, MODEL_DOWNLOADED, clear, emit, off, on


@pytest.mark.asyncio
async def test_emit_passes_kwargs():
    received = []

    async def handler(**kwargs):
        received.append(kwargs)

    on(MODEL_DELETED, handler)
    await emit(MODEL_DELETED, model_id="m1")

    assert received == [{"model_id": "m1"}]


@pytest.mark.asyncio
async def test_handlers_run_in_subscription_order():
    calls = []

    async def first(**kwargs):
        calls.append("first")

    async def second(**kwargs):
        calls.append("second")

    on(MODEL_DOWNLOADED, first)
    on(MODEL_DOWNLOADED, second)
    await emit(MODEL_DOWNLOADED)

    assert calls == ["first", "second"]


@pytest.mark.asyncio
async def test_emit_without_subscribers():
    await emit("no.subscribers")


@pytest.mark.asyncio
async def test_failing_handler_is_isolated():
    """A handler that raises does not stop the others."""
    calls = []

    async def bad_handler(**kwargs):
        raise ValueError("boom")

    async def good_handler(**kwargs):
        calls.append("ok")

    on(MODEL_DELETED, bad_handler)
    on(MODEL_DELETED, good_handler)
    await emit(MODEL_DELETED, model_id="x")

    assert calls == ["ok"]


@pytest.mark.asyncio
async def test_off_unsubscribes():
    calls = []

    async def handler(**kwargs):
        calls.append(1)

    on(MODEL_DELETED, handler)
    off(MODEL_DELETED, handler)
    off(MODEL_DELETED, handler)  # second removal is a no-op
    off("never.subscribed", handler)
    await emit(MODEL_DELETED)

    assert calls == []


@pytest.mark.asyncio
async def test_handler_may_unsubscribe_during_emit():
    calls = []

    async def once(**kwargs):
        calls.append("once")
        off(MODEL_DOWNLOADED, once)

    async def always(**kwargs):
        calls.append("always")

    on(MODEL_DOWNLOADED, once)
    on(MODEL_DOWNLOADED, always)
    await emit(MODEL_DOWNLOADED)
    await emit(MODEL_DOWNLOADED)

    assert calls == ["once", "always", "always"]


@pytest.mark.asyncio
async def test_clear_removes_all_handlers():
    called = False

    async def handler(**kwargs):
        nonlocal called
        called = True

    on(MODEL_DOWNLOADED, handler)
    clear()
    await emit(MODEL_DOWNLOADED)

    assert not called
