"""Tests for broadcast line channels."""

import asyncio

import pytest

from covplane.coverage.channels import LineChannel


class TestLineChannel:
    @pytest.mark.asyncio
    async def test_given_late_subscriber_when_subscribed_then_history_replayed(self) -> None:
        # Given
        channel = LineChannel("output")
        channel.publish("first")
        channel.publish("second")
        channel.close()

        # When
        lines = [line async for line in channel]

        # Then
        assert lines == ["first", "second"]

    @pytest.mark.asyncio
    async def test_given_two_subscribers_when_published_then_both_see_everything(self) -> None:
        # Given
        channel = LineChannel("output")
        channel.publish("early")

        async def collect() -> list[str]:
            return [line async for line in channel]

        first = asyncio.create_task(collect())
        second = asyncio.create_task(collect())
        await asyncio.sleep(0)

        # When
        channel.publish("late")
        await asyncio.sleep(0)
        channel.publish("later")
        channel.close()

        # Then
        assert await first == ["early", "late", "later"]
        assert await second == ["early", "late", "later"]

    def test_publish_after_close_is_dropped(self) -> None:
        channel = LineChannel("error")
        channel.close()

        channel.publish("ignored")

        assert channel.closed
        assert channel.lines == []
