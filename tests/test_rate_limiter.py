from __future__ import annotations

import asyncio

from prompt_proxy.serve.rate_limiter import RateLimiter, run_sweeper


def test_admits_up_to_quota(clock) -> None:
    limiter = RateLimiter(limit=20, window_seconds=60, clock=clock)
    assert all(limiter.admit("1.2.3.4") for _ in range(20))
    assert limiter.admit("1.2.3.4") is False


def test_rejection_does_not_extend_window(clock) -> None:
    limiter = RateLimiter(limit=2, window_seconds=60, clock=clock)
    assert limiter.admit("a")
    assert limiter.admit("a")
    clock.advance(30)
    assert not limiter.admit("a")
    clock.advance(30)
    assert limiter.admit("a")


def test_sliding_window_never_allows_double_quota(clock) -> None:
    limiter = RateLimiter(limit=3, window_seconds=60, clock=clock)
    clock.advance(59)
    admitted = [limiter.admit("a") for _ in range(3)]
    clock.advance(2)  # crosses a minute boundary but not the lookback
    admitted += [limiter.admit("a") for _ in range(3)]
    assert admitted == [True, True, True, False, False, False]


def test_clients_are_independent(clock) -> None:
    limiter = RateLimiter(limit=1, clock=clock)
    assert limiter.admit("a")
    assert limiter.admit("b")
    assert not limiter.admit("a")


def test_sweep_drops_idle_clients_only(clock) -> None:
    limiter = RateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.admit("idle")
    clock.advance(45)
    limiter.admit("active")
    clock.advance(30)
    assert limiter.sweep() == 1
    assert limiter.active_clients == 1
    assert limiter.admit("active")


def test_run_sweeper_sweeps_until_cancelled(clock) -> None:
    limiter = RateLimiter(clock=clock)
    limiter.admit("a")
    clock.advance(120)

    async def scenario() -> None:
        task = asyncio.create_task(run_sweeper(limiter, interval=0.01))
        await asyncio.sleep(0.05)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    asyncio.run(scenario())
    assert limiter.active_clients == 0
