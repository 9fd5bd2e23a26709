"""Tests for InMemoryEventBus."""
import logging

import pytest

from core.domain.events.order_events import OrderCancelledEvent, OrderCreatedEvent
from core.infrastructure.event_bus import InMemoryEventBus, log_domain_event


def _created_event():
    return OrderCreatedEvent(
        order_id="o-1",
        order_number="48213907",
        user_id="user-1",
        merchant_order_id="m-1",
        total_amount="2297.50",
        items_count=2,
    )


@pytest.mark.asyncio
async def test_sync_and_async_subscribers_receive_events():
    bus = InMemoryEventBus()
    received = []

    async def async_handler(event):
        received.append(("async", event.event_type))

    bus.subscribe(lambda event: received.append(("sync", event.event_type)))
    bus.subscribe(async_handler)

    await bus.publish(_created_event())

    assert received == [("sync", "OrderCreatedEvent"), ("async", "OrderCreatedEvent")]


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_stop_others(caplog):
    bus = InMemoryEventBus()
    received = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(broken)
    bus.subscribe(received.append)

    with caplog.at_level(logging.ERROR):
        await bus.publish_all(
            [_created_event(), OrderCancelledEvent(order_id="o-1", order_number="48213907", reason="x")]
        )

    assert len(received) == 2
    assert "broken failed" in caplog.text


@pytest.mark.asyncio
async def test_unsubscribe():
    bus = InMemoryEventBus()
    received = []
    bus.subscribe(received.append)
    bus.unsubscribe(received.append)

    await bus.publish(_created_event())

    assert received == []


def test_log_domain_event_uses_order_number(caplog):
    with caplog.at_level(logging.INFO):
        log_domain_event(_created_event())

    assert "[48213907] OrderCreatedEvent" in caplog.text
