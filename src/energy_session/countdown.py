"""
Countdown timer for study and rest runs.

The countdown itself is pure state: it only changes when ``tick()`` is
called. ``Ticker`` is the cooperative driver that calls back once per
interval on the running asyncio loop, and only while it is started.
"""

import asyncio
import logging
from typing import Callable, Optional

from .models import TimerState

logger = logging.getLogger(__name__)

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 90
DURATION_STEP_MINUTES = 5
PRESET_DURATIONS = (10, 25, 45)
DEFAULT_DURATION_MINUTES = 25
POMODORO_BREAK_MINUTES = 5


def validate_duration(duration_minutes: int) -> int:
    """
    Check a timer duration against the allowed range.

    Args:
        duration_minutes: Requested duration in whole minutes

    Returns:
        The duration as an int

    Raises:
        ValueError: If the duration is outside 5-90 or not a multiple of 5
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValueError(f"Duration must be a whole number of minutes, got {duration_minutes!r}")
    if not MIN_DURATION_MINUTES <= duration_minutes <= MAX_DURATION_MINUTES:
        raise ValueError(
            f"Duration must be between {MIN_DURATION_MINUTES} and "
            f"{MAX_DURATION_MINUTES} minutes, got {duration_minutes}"
        )
    if duration_minutes % DURATION_STEP_MINUTES:
        raise ValueError(
            f"Duration must be a multiple of {DURATION_STEP_MINUTES} minutes, got {duration_minutes}"
        )
    return duration_minutes


def format_remaining(seconds: int) -> str:
    """Format seconds as MM:SS."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class Countdown:
    """Resumable, restartable countdown over a ``TimerState``."""

    def __init__(self, duration_minutes: int = DEFAULT_DURATION_MINUTES, pomodoro_enabled: bool = False):
        duration = validate_duration(duration_minutes)
        self._state = TimerState(
            duration_minutes=duration,
            remaining_seconds=duration * 60,
            pomodoro_enabled=pomodoro_enabled,
        )

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def is_complete(self) -> bool:
        return self._state.is_complete

    @property
    def remaining_seconds(self) -> int:
        return self._state.remaining_seconds

    def play(self) -> None:
        if self._state.is_complete or self._state.remaining_seconds <= 0:
            logger.debug("[TIMER] Ignoring play on a finished countdown")
            return
        self._state.is_running = True

    def pause(self) -> None:
        self._state.is_running = False

    def toggle(self) -> bool:
        """Flip between running and paused. Returns the new running flag."""
        if self._state.is_running:
            self.pause()
        else:
            self.play()
        return self._state.is_running

    def tick(self) -> bool:
        """
        Advance the countdown by one second.

        Returns:
            True only on the tick that brings the countdown to zero
        """
        if not self._state.is_running or self._state.remaining_seconds <= 0:
            return False

        self._state.remaining_seconds -= 1
        if self._state.remaining_seconds == 0:
            self._state.is_running = False
            self._state.is_complete = True
            return True
        return False

    def restart(self) -> None:
        """Rewind to the configured duration, stopped."""
        self._state.remaining_seconds = self._state.total_seconds
        self._state.is_running = False
        self._state.is_complete = False


class Ticker:
    """
    Calls ``callback`` once per ``interval`` seconds while started.

    The callback returns False to stop the ticker from the inside (e.g. when
    the countdown completes). Stopping is idempotent and cancels the
    underlying task so no tick fires after ``stop()`` returns.
    """

    def __init__(self, callback: Callable[[], bool], interval: float = 1.0):
        self._callback = callback
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """
        Register the periodic tick on the running loop.

        Returns:
            True if a tick task is active after the call. False when no
            event loop is running, in which case the owner drives ticks
            manually.
        """
        if self.active:
            return True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[TIMER] No running event loop, ticks must be driven manually")
            return False
        self._task = loop.create_task(self._run())
        return True

    def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    async def _run(self) -> None:
        try:
            while True:
                await asyncio.sleep(self.interval)
                if not self._callback():
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[TIMER] Tick callback failed: {e}")
        finally:
            if self._task is not None and self._task is _current_task():
                self._task = None


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
