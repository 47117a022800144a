import asyncio
import time

import pytest

from janusmsg.message_types import JanusResponse
from janusmsg.response_tracker import (
    ResponseTracker,
    ResponseTrackerError,
    TrackerConfig,
)


def _response(command_id):
    return JanusResponse.make_success(command_id, "test-channel", {"status": "ok"})


@pytest.mark.asyncio
async def test_response_resolves_future():
    tracker = ResponseTracker()
    future = tracker.track_command("cmd-1", 5.0)
    assert tracker.is_tracking("cmd-1")
    assert tracker.handle_response(_response("cmd-1")) is True
    response = await future
    assert response.command_id == "cmd-1"
    assert response.result == {"status": "ok"}
    assert tracker.pending_count() == 0


@pytest.mark.asyncio
async def test_unknown_response_is_rejected():
    tracker = ResponseTracker()
    assert tracker.handle_response(_response("missing")) is False


@pytest.mark.asyncio
async def test_duplicate_command_id_rejected():
    tracker = ResponseTracker()
    tracker.track_command("dup", 5.0)
    with pytest.raises(ResponseTrackerError, match="already being tracked: dup"):
        tracker.track_command("dup", 5.0)
    assert tracker.pending_count() == 1
    tracker.cancel_all_commands()


@pytest.mark.asyncio
async def test_pending_limit_enforced():
    tracker = ResponseTracker(TrackerConfig(max_pending_commands=2))
    tracker.track_command("a", 5.0)
    tracker.track_command("b", 5.0)
    with pytest.raises(ResponseTrackerError, match="maximum 2 commands allowed"):
        tracker.track_command("c", 5.0)
    assert sorted(tracker.pending_command_ids()) == ["a", "b"]
    tracker.cancel_all_commands()


@pytest.mark.asyncio
async def test_cancel_command_fails_future():
    tracker = ResponseTracker()
    future = tracker.track_command("cmd", 5.0)
    assert tracker.cancel_command("cmd", "stopping") is True
    with pytest.raises(ResponseTrackerError, match="cmd - stopping"):
        await future
    assert tracker.cancel_command("cmd") is False
    assert not tracker.is_tracking("cmd")


@pytest.mark.asyncio
async def test_cancel_all_commands_counts():
    tracker = ResponseTracker()
    futures = [tracker.track_command(name, 5.0) for name in ("x", "y", "z")]
    assert tracker.cancel_all_commands("done") == 3
    assert tracker.pending_count() == 0
    for future in futures:
        with pytest.raises(ResponseTrackerError):
            await future


@pytest.mark.asyncio
async def test_command_times_out():
    tracker = ResponseTracker()
    future = tracker.track_command("slow", 0.05)
    with pytest.raises(ResponseTrackerError, match="timed out"):
        await asyncio.wait_for(future, 1.0)
    assert not tracker.is_tracking("slow")
    assert tracker.handle_response(_response("slow")) is False


@pytest.mark.asyncio
async def test_zero_timeout_uses_default():
    tracker = ResponseTracker(TrackerConfig(default_timeout=0.05))
    future = tracker.track_command("default", 0)
    with pytest.raises(ResponseTrackerError):
        await asyncio.wait_for(future, 1.0)
    assert tracker.pending_count() == 0


@pytest.mark.asyncio
async def test_statistics_empty():
    stats = ResponseTracker().statistics()
    assert stats.pending_count == 0
    assert stats.average_age == 0.0
    assert stats.oldest_command is None
    assert stats.newest_command is None


@pytest.mark.asyncio
async def test_statistics_oldest_and_newest():
    tracker = ResponseTracker()
    tracker.track_command("first", 5.0)
    await asyncio.sleep(0.02)
    tracker.track_command("second", 5.0)
    stats = tracker.statistics()
    assert stats.pending_count == 2
    assert stats.oldest_command.id == "first"
    assert stats.newest_command.id == "second"
    assert stats.oldest_command.age >= stats.newest_command.age
    assert stats.newest_command.age <= stats.average_age <= stats.oldest_command.age
    tracker.cancel_all_commands()


@pytest.mark.asyncio
async def test_cleanup_removes_expired_only():
    tracker = ResponseTracker()
    expired = tracker.track_command("expired", 0.01)
    tracker.track_command("alive", 5.0)
    time.sleep(0.03)
    assert tracker.cleanup() == 1
    assert tracker.pending_command_ids() == ["alive"]
    with pytest.raises(ResponseTrackerError):
        await expired
    tracker.cancel_all_commands()


@pytest.mark.asyncio
async def test_shutdown_cancels_pending():
    tracker = ResponseTracker()
    tracker.start()
    future = tracker.track_command("pending", 5.0)
    await tracker.shutdown()
    assert tracker.pending_count() == 0
    with pytest.raises(ResponseTrackerError, match="Tracker shutdown"):
        await future


@pytest.mark.asyncio
async def test_context_manager_shuts_down():
    async with ResponseTracker(TrackerConfig(cleanup_interval=0.01)) as tracker:
        future = tracker.track_command("inside", 5.0)
        await asyncio.sleep(0.03)
        assert tracker.is_tracking("inside")
    assert not tracker.is_tracking("inside")
    with pytest.raises(ResponseTrackerError):
        await future