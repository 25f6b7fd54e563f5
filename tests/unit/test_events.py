"""Unit tests for the progress event bus."""

import pytest

from ebdeploy.core.events import Event, EventBus


class TestEventBus:
    """Tests for EventBus."""

    @pytest.mark.asyncio
    async def test_fan_out(self):
        bus = EventBus()
        first = bus.subscribe()
        second = bus.subscribe()

        await bus.publish_step_started("build", "Building application")

        assert first.get_nowait().data == {"step": "build", "title": "Building application"}
        assert second.get_nowait().event_type == "step_started"

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        queue = bus.subscribe()
        bus.unsubscribe(queue)

        await bus.publish_step_failed("build", "boom")

        assert queue.empty()

    @pytest.mark.asyncio
    async def test_no_subscribers(self):
        await EventBus().publish_pipeline_completed("shop", "shop-env")


class TestEvent:
    """Tests for Event."""

    def test_terminal(self):
        assert Event("pipeline_failed", {}).is_terminal
        assert Event("pipeline_completed", {}).is_terminal
        assert not Event("step_completed", {}).is_terminal

