"""Tests for the process-wide stop context."""

from __future__ import annotations

import asyncio
import threading

from loks.context import StopContext


class TestStopContext:
    async def test_wait_returns_after_cancel(self) -> None:
        ctx = StopContext()
        waiter = asyncio.create_task(ctx.wait())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        ctx.cancel()
        await asyncio.wait_for(waiter, timeout=1.0)
        assert ctx.cancelled

    async def test_wait_on_cancelled_context_returns_immediately(self) -> None:
        ctx = StopContext()
        ctx.cancel()
        await asyncio.wait_for(ctx.wait(), timeout=1.0)

    async def test_cancel_from_another_thread(self) -> None:
        ctx = StopContext()
        waiter = asyncio.create_task(ctx.wait())
        await asyncio.sleep(0.01)

        threading.Thread(target=ctx.cancel).start()
        await asyncio.wait_for(waiter, timeout=1.0)

    def test_callbacks_run_once(self) -> None:
        ctx = StopContext()
        calls = []
        ctx.on_cancel(lambda: calls.append("a"))
        ctx.cancel()
        ctx.cancel()
        assert calls == ["a"]

    def test_callback_on_cancelled_context_runs_immediately(self) -> None:
        ctx = StopContext()
        ctx.cancel()
        calls = []
        ctx.on_cancel(lambda: calls.append("late"))
        assert calls == ["late"]

    def test_unregistered_callback_is_not_run(self) -> None:
        ctx = StopContext()
        calls = []
        unregister = ctx.on_cancel(lambda: calls.append("x"))
        unregister()
        unregister()
        ctx.cancel()
        assert calls == []

    def test_failing_callback_does_not_stop_the_others(self) -> None:
        ctx = StopContext()
        calls = []

        def boom() -> None:
            raise RuntimeError("boom")

        ctx.on_cancel(boom)
        ctx.on_cancel(lambda: calls.append("after"))
        ctx.cancel()
        assert calls == ["after"]

    def test_child_follows_parent(self) -> None:
        parent = StopContext()
        child = parent.derive()
        parent.cancel()
        assert child.cancelled

    def test_child_cancel_leaves_parent_alone(self) -> None:
        parent = StopContext()
        child = parent.derive()
        child.cancel()
        assert not parent.cancelled

    def test_detached_child_is_not_cancelled(self) -> None:
        parent = StopContext()
        child = parent.derive()
        child.detach()
        parent.cancel()
        assert not child.cancelled
