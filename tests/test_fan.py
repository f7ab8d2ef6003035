"""Tests for the fan control operations and their caching policy."""

from __future__ import annotations

import logging

import pytest

from udp_fan.exceptions import (
    InvalidResponseError,
    ResponseTimeoutError,
    SendExhaustedError,
)
from udp_fan.fan import UdpFan
from udp_fan.models import FanState
from tests.fakes import FakeFanBoard, FakeMonotonic, RecordingSleep, make_config


def _fan(board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep) -> UdpFan:
    return UdpFan(make_config(), transport=board, monotonic=clock, sleep=sleep)


@pytest.mark.asyncio
@pytest.mark.parametrize("level", (0, 1, 2, 3))
async def test_set_then_get_speed_round_trips(
    level: int,
    board: FakeFanBoard,
    clock: FakeMonotonic,
    sleep: RecordingSleep,
) -> None:
    """Setting a level's percentage reads back the same percentage."""

    fan = _fan(board, clock, sleep)

    await fan.async_set_speed(level * 33.33)
    clock.advance(10)
    speed = await fan.async_get_speed()

    assert abs(speed - level * 33.33) < 1
    assert board.sent[0] == f"s,{level}"


@pytest.mark.asyncio
async def test_fresh_cache_answers_without_network(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Reads inside the freshness window do not touch the board."""

    board.level = 2
    fan = _fan(board, clock, sleep)
    await fan.async_get_speed()
    sent_before = list(board.sent)

    clock.advance(1.999)
    board.level = 0

    assert await fan.async_get_speed() == pytest.approx(66.66)
    assert await fan.async_get_active() == 1
    assert board.sent == sent_before


@pytest.mark.asyncio
async def test_expired_cache_is_refreshed_from_board(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Once stale, the next read queries the board and updates the cache."""

    board.level = 2
    fan = _fan(board, clock, sleep)
    await fan.async_get_speed()

    clock.advance(2.001)
    board.level = 1

    assert await fan.async_get_speed() == pytest.approx(33.33)
    assert fan.cache.read() == FanState(1)


@pytest.mark.asyncio
async def test_failed_query_falls_back_to_stale_cache(
    board: FakeFanBoard,
    clock: FakeMonotonic,
    sleep: RecordingSleep,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A stale value beats an error for reads."""

    board.level = 3
    fan = _fan(board, clock, sleep)
    await fan.async_get_speed()

    clock.advance(2.001)
    board.drop_replies = 100
    with caplog.at_level(logging.WARNING):
        speed = await fan.async_get_speed()
        active = await fan.async_get_active()

    assert speed == pytest.approx(99.99)
    assert active == 1
    assert board.sent.count("s") == 1 + 2 * 4
    assert "using last known" in caplog.text


@pytest.mark.asyncio
async def test_failed_query_without_cache_propagates(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """With nothing cached the read error reaches the caller."""

    board.drop_replies = 100
    fan = _fan(board, clock, sleep)

    with pytest.raises(ResponseTimeoutError):
        await fan.async_get_speed()
    with pytest.raises(ResponseTimeoutError):
        await fan.async_get_active()


@pytest.mark.asyncio
async def test_out_of_range_reply_never_reaches_cache(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """A level the board cannot run at is treated as an invalid reply."""

    board.reply_override = [b"9,1"]
    fan = _fan(board, clock, sleep)

    with pytest.raises(InvalidResponseError):
        await fan.async_get_speed()

    assert fan.cache.entry is None


@pytest.mark.asyncio
async def test_invalid_reply_uses_stale_fallback(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Malformed replies follow the same degraded read path as timeouts."""

    board.level = 1
    fan = _fan(board, clock, sleep)
    await fan.async_get_speed()
    clock.advance(3)
    board.reply_override = [b"garbage"]

    assert await fan.async_get_speed() == pytest.approx(33.33)


@pytest.mark.asyncio
@pytest.mark.parametrize(("level", "active"), ((0, 0), (1, 1), (2, 1), (3, 1)))
async def test_get_active_follows_speed_level(
    level: int,
    active: int,
    board: FakeFanBoard,
    clock: FakeMonotonic,
    sleep: RecordingSleep,
) -> None:
    """The power state is 1 exactly when the speed level is above 0."""

    board.level = level
    fan = _fan(board, clock, sleep)

    assert await fan.async_get_active() == active


@pytest.mark.asyncio
async def test_set_speed_caches_confirmed_level_not_intent(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """50% means level 2; a board still at 1 gets one correction."""

    board.level = 1
    board.ignore_speed_commands = 1
    fan = _fan(board, clock, sleep)

    state = await fan.async_set_speed(50)

    assert state == FanState(1)
    assert board.sent == ["s,2", "s", "s,2"]
    assert fan.cache.read() == FanState(1)
    assert await fan.async_get_speed() == pytest.approx(33.33)


@pytest.mark.asyncio
async def test_set_speed_failure_propagates_and_keeps_cache(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Writes never hide a failure behind cached state."""

    board.level = 2
    fan = _fan(board, clock, sleep)
    await fan.async_get_speed()
    board.fail_sends = 100

    with pytest.raises(SendExhaustedError):
        await fan.async_set_speed(100)

    assert fan.cache.read() == FanState(2)


@pytest.mark.asyncio
async def test_power_on_reads_back_resumed_speed(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Switching on caches whatever speed the board resumed at."""

    board.level = 0
    board.resume_level = 2
    fan = _fan(board, clock, sleep)

    state = await fan.async_set_active(1)

    assert state == FanState(2)
    assert board.sent == ["f,1", "s"]
    assert fan.cache.read() == FanState(2)


@pytest.mark.asyncio
async def test_power_off_caches_zero_without_query(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """Switching off is known to mean level 0."""

    board.level = 3
    fan = _fan(board, clock, sleep)

    state = await fan.async_set_active(0)

    assert state == FanState(0)
    assert board.sent == ["f,0"]
    assert await fan.async_get_active() == 0
    assert board.sent == ["f,0"]


@pytest.mark.asyncio
async def test_power_command_failure_propagates(
    board: FakeFanBoard, clock: FakeMonotonic, sleep: RecordingSleep
) -> None:
    """A power command that cannot be sent leaves the cache untouched."""

    board.fail_sends = 100
    fan = _fan(board, clock, sleep)

    with pytest.raises(SendExhaustedError):
        await fan.async_set_active(0)

    assert fan.cache.entry is None
    assert board.sent == ["f,0"] * 4
