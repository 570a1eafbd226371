"""Tests for the threaded subscription bridge."""

from __future__ import annotations

import time
from unittest.mock import MagicMock

import pytest

from substrate_tx.chain.substrate.subscription import ThreadedSubscription


def _replay(*messages):
    def run(connection, handler):
        for nr, message in enumerate(messages):
            handler(message, nr, "sub-1")

    return run


def _endless(connection, handler):
    nr = 0
    while True:
        result = handler({"nr": nr}, nr, "sub-1")
        if result is not None:
            return result
        nr += 1
        time.sleep(0.001)


class TestThreadedSubscription:
    async def test_items_in_order(self) -> None:
        sub = ThreadedSubscription(MagicMock(), _replay(1, 2, 3), parse=lambda m: m * 10)
        await sub.start()
        assert [item async for item in sub] == [10, 20, 30]
        await sub.unsubscribe()

    async def test_parse_none_skips(self) -> None:
        parse = lambda m: m if m % 2 else None  # noqa: E731
        sub = ThreadedSubscription(MagicMock(), _replay(1, 2, 3, 4), parse=parse)
        await sub.start()
        assert [item async for item in sub] == [1, 3]
        await sub.unsubscribe()

    async def test_iteration_after_end(self) -> None:
        sub = ThreadedSubscription(MagicMock(), _replay(), parse=lambda m: m)
        await sub.start()
        assert [item async for item in sub] == []
        assert [item async for item in sub] == []
        await sub.unsubscribe()

    async def test_worker_error_raised_on_iteration(self) -> None:
        def run(connection, handler):
            handler("first", 0, "sub-1")
            raise ConnectionResetError("socket closed")

        sub = ThreadedSubscription(MagicMock(), run, parse=lambda m: m)
        await sub.start()
        received = []
        with pytest.raises(ConnectionResetError):
            async for item in sub:
                received.append(item)
        assert received == ["first"]
        await sub.unsubscribe()

    async def test_error_before_first_message(self) -> None:
        def run(connection, handler):
            raise ValueError("rejected")

        connection = MagicMock()
        sub = ThreadedSubscription(connection, run, parse=lambda m: m)
        with pytest.raises(ValueError, match="rejected"):
            await sub.start(wait_established=True)
        await sub.unsubscribe()
        connection.close.assert_called_once()

    async def test_closed_before_first_message(self) -> None:
        sub = ThreadedSubscription(MagicMock(), _replay(), parse=lambda m: m, name="empty")
        with pytest.raises(ConnectionError, match="empty"):
            await sub.start(wait_established=True)
        await sub.unsubscribe()

    async def test_unsubscribe_stops_worker(self) -> None:
        connection = MagicMock()
        sub = ThreadedSubscription(connection, _endless, parse=lambda m: m["nr"])
        await sub.start(wait_established=True)
        first = await sub.__anext__()
        second = await sub.__anext__()
        assert (first, second) == (0, 1)
        await sub.unsubscribe()
        await sub.unsubscribe()
        assert sub.is_active is False
        connection.close.assert_called_once()
