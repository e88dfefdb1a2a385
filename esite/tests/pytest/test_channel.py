"""
Tests for the pending-notification channel.
"""

from __future__ import annotations

import asyncio

import pytest

from esite.preview.channel import Event, EventChannel


@pytest.mark.evergreen
class TestEventChannel:
    """One shared future, resolved once, then replaced."""

    def test_all_waiters_receive_the_event(self) -> None:
        async def scenario():
            channel = EventChannel()
            waiters = [asyncio.create_task(channel.wait()) for _ in range(3)]
            await asyncio.sleep(0)
            channel.publish(Event.STYLE)
            return await asyncio.gather(*waiters)

        assert asyncio.run(scenario()) == [Event.STYLE] * 3

    def test_late_waiter_gets_next_event_only(self) -> None:
        async def scenario():
            channel = EventChannel()
            early = asyncio.create_task(channel.wait())
            await asyncio.sleep(0)
            channel.publish(Event.STYLE)
            late = asyncio.create_task(channel.wait())
            await asyncio.sleep(0)
            assert not late.done()
            channel.publish(Event.RELOAD)
            return await early, await late

        assert asyncio.run(scenario()) == (Event.STYLE, Event.RELOAD)

    def test_publish_without_waiters_is_dropped(self) -> None:
        async def scenario():
            channel = EventChannel()
            channel.publish(Event.RELOAD)
            waiter = asyncio.create_task(channel.wait())
            await asyncio.sleep(0.01)
            pending = not waiter.done()
            waiter.cancel()
            return pending

        assert asyncio.run(scenario()) is True

    def test_cancelled_waiter_does_not_affect_others(self) -> None:
        async def scenario():
            channel = EventChannel()
            leaving = asyncio.create_task(channel.wait())
            staying = asyncio.create_task(channel.wait())
            await asyncio.sleep(0)
            leaving.cancel()
            await asyncio.sleep(0)
            assert channel.waiting
            channel.publish(Event.RELOAD)
            return await staying

        assert asyncio.run(scenario()) is Event.RELOAD
