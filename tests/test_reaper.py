import asyncio
import time

from conftest import FakeTransport

from dogfight.app import RelayService
from dogfight.game.config import ServerConfig


async def test_sweep_evicts_only_idle_sessions(svc, connect):
    a, ta = await connect("Ace")
    b, tb = await connect("Bandit")
    c, tc = await connect("Corsair")
    now = time.monotonic()
    b.last_activity = now - 31.0
    a.last_activity = now - 5.0
    c.last_activity = now
    ta.clear()
    tc.clear()

    evicted = await svc.reaper.sweep(now)

    assert evicted == [b.session_id]
    assert svc.registry.get(b.session_id) is None
    assert tb.closed
    for t in (ta, tc):
        (left,) = t.of_type("player_left")
        assert left["playerId"] == b.session_id


async def test_departure_announced_once_when_client_closes_concurrently(svc, connect):
    a, ta = await connect("Ace")
    b, _ = await connect("Bandit")
    now = time.monotonic()
    b.last_activity = now - 60.0
    ta.clear()

    # The socket's own close path and the sweep race for the same session.
    results = await asyncio.gather(
        svc.hub.disconnect(b.session_id, reason="closed"),
        svc.reaper.sweep(now),
    )

    assert results[0] is True
    assert results[1] == []
    assert len(ta.of_type("player_left")) == 1


async def test_already_closed_transport_is_not_closed_again(svc, connect):
    await connect("Ace")
    b, tb = await connect("Bandit")
    tb.closed = True
    now = time.monotonic()
    b.last_activity = now - 100.0
    assert await svc.reaper.sweep(now) == [b.session_id]
    assert tb.close_calls == 0


async def test_periodic_task_runs_and_stops():
    svc = RelayService(ServerConfig(idle_timeout_sec=0.05, reap_interval_sec=0.02))
    a = await svc.hub.accept(FakeTransport())
    await svc.start()
    assert svc.reaper.running
    await asyncio.sleep(0.2)
    assert svc.registry.get(a.session_id) is None

    await svc.stop()
    assert not svc.reaper.running
