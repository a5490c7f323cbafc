"""
Test suite for the EventBus and the StatusStream executor.
Tests: 1) Hook/subscriber order 2) Result collection 3) Failing observers are isolated
"""
import asyncio
import pytest
from gasless_relay.engine.events import (
    BalanceUpdatedEvent,
    Dependencies,
    EventBus,
    SessionUpdatedEvent,
    TransferSettledEvent,
)
from gasless_relay.engine.executors import StatusStream
from gasless_relay.schemas.bases import TransferOutcome
from gasless_relay.schemas.session import SessionPhase, SessionSnapshot, SessionState


calls = []


async def hook_record(event: BalanceUpdatedEvent, deps: Dependencies):
    calls.append("hook")


async def handle_slow(event: BalanceUpdatedEvent, deps: Dependencies):
    await asyncio.sleep(0.05)
    calls.append("slow")
    return "slow"


async def handle_fast(event: BalanceUpdatedEvent, deps: Dependencies):
    calls.append("fast")
    return "fast"


async def handle_silent(event: BalanceUpdatedEvent, deps: Dependencies):
    calls.append("silent")


async def handle_broken(event: BalanceUpdatedEvent, deps: Dependencies):
    raise RuntimeError("observer bug")


@pytest.mark.asyncio
async def test_hooks_run_before_subscribers_and_results_are_collected():
    calls.clear()
    event_bus = EventBus()
    event_bus.subscribe(BalanceUpdatedEvent, handle_slow)
    event_bus.subscribe(BalanceUpdatedEvent, handle_fast)
    event_bus.subscribe(BalanceUpdatedEvent, handle_silent)
    event_bus.hook(BalanceUpdatedEvent, hook_record)

    results = await event_bus.publish(BalanceUpdatedEvent(address="0x1", balance="1.0"), Dependencies())

    assert calls[0] == "hook"
    # Subscribers run in parallel and yield as they complete
    assert results == ["fast", "slow"]
    assert set(calls[1:]) == {"slow", "fast", "silent"}


@pytest.mark.asyncio
async def test_failing_observer_does_not_stop_the_others():
    calls.clear()
    event_bus = EventBus()
    event_bus.subscribe(BalanceUpdatedEvent, handle_broken)
    event_bus.subscribe(BalanceUpdatedEvent, handle_fast)
    event_bus.hook(BalanceUpdatedEvent, handle_broken)

    results = await event_bus.publish(BalanceUpdatedEvent(address="0x1", balance="1.0"), Dependencies())

    assert results == ["fast"]


@pytest.mark.asyncio
async def test_events_only_reach_their_own_subscribers():
    calls.clear()
    event_bus = EventBus()
    event_bus.subscribe(BalanceUpdatedEvent, handle_fast)

    outcome = TransferOutcome.confirmed("0xtx")
    assert await event_bus.publish(TransferSettledEvent(outcome=outcome), Dependencies()) == []
    assert calls == []


@pytest.mark.asyncio
async def test_unsubscribe():
    calls.clear()
    event_bus = EventBus()
    event_bus.subscribe(BalanceUpdatedEvent, handle_fast)
    event_bus.unsubscribe(BalanceUpdatedEvent, handle_fast)
    event_bus.unsubscribe(BalanceUpdatedEvent, handle_slow)

    assert await event_bus.publish(BalanceUpdatedEvent(address="0x1", balance="1.0"), Dependencies()) == []


def test_sync_handlers_are_rejected():
    event_bus = EventBus()

    def not_async(event, deps):
        return None

    with pytest.raises(TypeError):
        event_bus.subscribe(BalanceUpdatedEvent, not_async)
    with pytest.raises(TypeError):
        event_bus.hook(BalanceUpdatedEvent, not_async)


@pytest.mark.asyncio
async def test_status_stream_collapses_duplicates_and_skips_empty_lines():
    event_bus = EventBus()
    stream = StatusStream(event_bus)
    deps = Dependencies()

    snapshots = [
        SessionSnapshot(state=SessionState.CONNECTING, phase=SessionPhase.HANDSHAKE),
        SessionSnapshot(state=SessionState.CONNECTING, phase=SessionPhase.HANDSHAKE),
        SessionSnapshot(state=SessionState.CONNECTED, address="0x1"),
        SessionSnapshot(state=SessionState.CONNECTED, address="0x1", balance="1.0"),
        SessionSnapshot(state=SessionState.CONNECTED, address="0x1", balance_loading=True),
    ]
    for snapshot in snapshots:
        await event_bus.publish(SessionUpdatedEvent(snapshot=snapshot), deps)
    stream.close()
    await event_bus.publish(SessionUpdatedEvent(snapshot=SessionSnapshot()), deps)

    lines = [line async for line in stream]
    assert lines == ["Connecting wallet...", "Wallet connected!", "Checking USDT balance..."]


@pytest.mark.asyncio
async def test_status_stream_can_include_empty_lines():
    event_bus = EventBus()
    stream = StatusStream(event_bus, include_empty=True)

    await event_bus.publish(SessionUpdatedEvent(snapshot=SessionSnapshot()), Dependencies())
    stream.close()

    assert [line async for line in stream] == [""]
