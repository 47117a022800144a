"""Correlation of asynchronous responses with the commands awaiting them."""

from __future__ import annotations

import asyncio
import contextlib
import time
from dataclasses import dataclass
from datetime import timedelta

from janusmsg.message_types import JanusResponse


def _seconds(value: float | timedelta | None) -> float:
    if value is None:
        return 0.0
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


@dataclass
class TrackerConfig:
    """Limits and timings for a ResponseTracker; durations are in seconds."""

    max_pending_commands: int = 1000
    cleanup_interval: float = 30.0
    default_timeout: float = 30.0


@dataclass
class PendingCommand:
    """A command awaiting its response."""

    future: asyncio.Future[JanusResponse]
    timestamp: float
    timeout: float
    timer: asyncio.TimerHandle | None = None

    def age(self, now: float) -> float:
        return now - self.timestamp

    def is_expired(self, now: float) -> bool:
        return self.age(now) >= self.timeout


class ResponseTrackerError(Exception):
    """Raised when a command cannot be tracked or will get no response."""


@dataclass(frozen=True)
class CommandInfo:
    """Identifier and age in seconds of a pending command."""

    id: str
    age: float


@dataclass(frozen=True)
class CommandStatistics:
    """Summary of the commands currently pending."""

    pending_count: int
    average_age: float
    oldest_command: CommandInfo | None
    newest_command: CommandInfo | None


def _fail(pending: PendingCommand, error: ResponseTrackerError) -> None:
    if pending.timer is not None:
        pending.timer.cancel()
    if not pending.future.done():
        pending.future.set_exception(error)
        # Nobody may await an abandoned command; do not report it as unhandled.
        pending.future.exception()


class ResponseTracker:
    """Tracks pending commands, resolving each with its response or failing it."""

    def __init__(self, config: TrackerConfig | None = None) -> None:
        self.config = config if config is not None else TrackerConfig()
        self._pending: dict[str, PendingCommand] = {}
        self._cleanup_task: asyncio.Task[None] | None = None

    async def __aenter__(self) -> ResponseTracker:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.shutdown()

    def start(self) -> None:
        """Start the periodic cleanup of expired commands on the running loop."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())

    def track_command(
        self, command_id: str, timeout: float | timedelta | None = None
    ) -> asyncio.Future[JanusResponse]:
        """Register a command and return a future resolved with its response.

        A timeout of zero or None uses the configured default.
        """
        seconds = _seconds(timeout) or _seconds(self.config.default_timeout)

        if len(self._pending) >= self.config.max_pending_commands:
            raise ResponseTrackerError(
                f"Too many pending commands: maximum "
                f"{self.config.max_pending_commands} commands allowed"
            )
        if command_id in self._pending:
            raise ResponseTrackerError(f"Command already being tracked: {command_id}")

        loop = asyncio.get_running_loop()
        pending = PendingCommand(loop.create_future(), time.monotonic(), seconds)
        pending.timer = loop.call_later(seconds, self._handle_timeout, command_id, pending)
        self._pending[command_id] = pending
        return pending.future

    def handle_response(self, response: JanusResponse) -> bool:
        """Deliver a response; return False if no command awaits it."""
        pending = self._pending.pop(response.command_id, None)
        if pending is None:
            return False
        if pending.timer is not None:
            pending.timer.cancel()
        if not pending.future.done():
            pending.future.set_result(response)
        return True

    def cancel_command(self, command_id: str, reason: str | None = None) -> bool:
        """Stop tracking a command, failing its future; return whether it was pending."""
        pending = self._pending.pop(command_id, None)
        if pending is None:
            return False
        reason = reason or "Command cancelled"
        _fail(pending, ResponseTrackerError(f"Command cancelled: {command_id} - {reason}"))
        return True

    def cancel_all_commands(self, reason: str | None = None) -> int:
        """Fail every pending command and return how many there were."""
        pending, self._pending = self._pending, {}
        reason = reason or "All commands cancelled"
        for entry in pending.values():
            _fail(entry, ResponseTrackerError(f"All commands cancelled: {reason}"))
        return len(pending)

    def pending_count(self) -> int:
        return len(self._pending)

    def pending_command_ids(self) -> list[str]:
        return list(self._pending)

    def is_tracking(self, command_id: str) -> bool:
        return command_id in self._pending

    def statistics(self) -> CommandStatistics:
        if not self._pending:
            return CommandStatistics(0, 0.0, None, None)
        now = time.monotonic()
        ages = [CommandInfo(cid, entry.age(now)) for cid, entry in self._pending.items()]
        return CommandStatistics(
            pending_count=len(ages),
            average_age=sum(info.age for info in ages) / len(ages),
            oldest_command=max(ages, key=lambda info: info.age),
            newest_command=min(ages, key=lambda info: info.age),
        )

    def cleanup(self) -> int:
        """Drop every command whose timeout has passed; return how many."""
        now = time.monotonic()
        expired = [cid for cid, entry in self._pending.items() if entry.is_expired(now)]
        for command_id in expired:
            self._expire(command_id, self._pending.pop(command_id))
        return len(expired)

    async def shutdown(self) -> None:
        """Stop the cleanup task and cancel every pending command."""
        task, self._cleanup_task = self._cleanup_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self.cancel_all_commands("Tracker shutdown")

    def _handle_timeout(self, command_id: str, pending: PendingCommand) -> None:
        if self._pending.get(command_id) is not pending:
            return
        if pending.is_expired(time.monotonic()):
            del self._pending[command_id]
            self._expire(command_id, pending)

    @staticmethod
    def _expire(command_id: str, pending: PendingCommand) -> None:
        _fail(
            pending,
            ResponseTrackerError(
                f"Command timeout: {command_id} timed out after {pending.timeout}s"
            ),
        )

    async def _cleanup_loop(self) -> None:
        interval = _seconds(self.config.cleanup_interval)
        while True:
            await asyncio.sleep(interval)
            self.cleanup()