"""Tests for the auto-save coordinator."""

from __future__ import annotations

import asyncio

import pytest

from siegekeeper.errors import CampaignNotFoundError, TransientStorageError
from siegekeeper.services import AutosaveCoordinator


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingTouch:
    def __init__(self, *, missing=(), failing=()) -> None:
        self.calls: list[int] = []
        self.missing = set(missing)
        self.failing = set(failing)

    def __call__(self, campaign_id: int) -> None:
        if campaign_id in self.missing:
            raise CampaignNotFoundError(campaign_id)
        if campaign_id in self.failing:
            raise TransientStorageError("database is locked")
        self.calls.append(campaign_id)


def _coordinator(touch, clock, delay: float = 30.0) -> AutosaveCoordinator:
    return AutosaveCoordinator(touch, delay_seconds=delay, check_interval_seconds=5.0, clock=clock)


def test_mark_modified_only_records_a_timestamp():
    clock = FakeClock()
    touch = RecordingTouch()
    coordinator = _coordinator(touch, clock)

    coordinator.mark_modified(1)

    assert coordinator.is_dirty(1)
    assert not coordinator.is_dirty(2)
    assert coordinator.pending() == {1: 1000.0}
    assert touch.calls == []


@pytest.mark.asyncio
async def test_burst_of_marks_coalesces_into_one_touch():
    clock = FakeClock()
    touch = RecordingTouch()
    coordinator = _coordinator(touch, clock)

    for _ in range(5):
        coordinator.mark_modified(1)
        clock.advance(2)

    assert await coordinator.flush_due() == []

    clock.advance(30)
    assert await coordinator.flush_due() == [1]
    assert await coordinator.flush_due() == []
    assert touch.calls == [1]
    assert not coordinator.is_dirty(1)


@pytest.mark.asyncio
async def test_only_quiet_campaigns_are_due():
    clock = FakeClock()
    touch = RecordingTouch()
    coordinator = _coordinator(touch, clock)

    coordinator.mark_modified(1)
    clock.advance(20)
    coordinator.mark_modified(2)
    clock.advance(15)

    assert coordinator.due() == [1]
    assert await coordinator.flush_due() == [1]
    assert coordinator.is_dirty(2)


@pytest.mark.asyncio
async def test_missing_campaign_is_dropped():
    clock = FakeClock()
    touch = RecordingTouch(missing={7})
    coordinator = _coordinator(touch, clock, delay=0.0)

    coordinator.mark_modified(7)

    assert await coordinator.flush_due() == []
    assert not coordinator.is_dirty(7)


@pytest.mark.asyncio
async def test_failed_touch_keeps_campaign_dirty():
    clock = FakeClock()
    touch = RecordingTouch(failing={3})
    coordinator = _coordinator(touch, clock, delay=0.0)

    coordinator.mark_modified(3)

    with pytest.raises(TransientStorageError):
        await coordinator.flush_due()
    assert coordinator.is_dirty(3)

    touch.failing.clear()
    assert await coordinator.flush_due() == [3]


@pytest.mark.asyncio
async def test_flush_all_ignores_quiet_period():
    clock = FakeClock()
    touch = RecordingTouch()
    coordinator = _coordinator(touch, clock)

    coordinator.mark_modified(2)
    coordinator.mark_modified(1)

    assert await coordinator.flush_all() == [1, 2]
    assert coordinator.pending() == {}


@pytest.mark.asyncio
async def test_background_loop_touches_due_campaigns():
    touch = RecordingTouch()
    coordinator = AutosaveCoordinator(touch, delay_seconds=0.0, check_interval_seconds=0.01)

    coordinator.start()
    assert coordinator.running
    coordinator.mark_modified(9)
    for _ in range(100):
        if touch.calls:
            break
        await asyncio.sleep(0.01)
    await coordinator.stop()

    assert touch.calls == [9]
    assert not coordinator.running


@pytest.mark.asyncio
async def test_stop_flushes_pending_marks():
    clock = FakeClock()
    touch = RecordingTouch()
    coordinator = _coordinator(touch, clock)

    coordinator.start()
    coordinator.mark_modified(4)
    await coordinator.stop()

    assert touch.calls == [4]


@pytest.mark.asyncio
async def test_touches_campaign_through_service(service):
    campaign = service.create_campaign("Autosaved")
    coordinator = AutosaveCoordinator(
        service.touch, delay_seconds=0.0, check_interval_seconds=1.0
    )

    coordinator.mark_modified(campaign.id)
    assert await coordinator.flush_due() == [campaign.id]

    assert service.get_campaign(campaign.id).updated_at >= campaign.updated_at
    assert not coordinator.is_dirty(campaign.id)
