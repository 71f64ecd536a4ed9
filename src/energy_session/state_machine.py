"""
Session/Timer State Machine.

Owns the check-in flow: energy level, chosen activity, the countdown and
feedback capture. Every transition is synchronous and returns immediately.
Side effects are limited to:

- writing the Local Session Store on energy/activity changes
- launching one detached remote-sync task when a timed cycle completes

Phases::

    idle -> energy_chosen -> activity_chosen -> timer_running
         -> timer_complete -> feedback_prompt -> idle

``reflect`` leaves ``activity_chosen`` for the terminal ``reflection``
placeholder instead of the timer sub-flow.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, Optional, Union

from .countdown import (
    DEFAULT_DURATION_MINUTES,
    POMODORO_BREAK_MINUTES,
    Countdown,
    Ticker,
    format_remaining,
)
from .exceptions import InvalidTransitionError
from .local_store import LocalSessionStore
from .models import Activity, CompletedSession, EnergyLevel, FeedbackChoice, SessionPhase
from .recommendation import get_recommendation

logger = logging.getLogger(__name__)

TIMED_ACTIVITIES = (Activity.STUDY, Activity.REST)

Listener = Callable[[dict], None]


class SessionStateMachine:
    """
    Single-user check-in state machine.

    Args:
        store: Local persistence for the current energy/activity choice
        sync_client: Object exposing ``async sync(CompletedSession) -> bool``;
            None disables remote sync
        identity_provider: Returns the current identity or None; sync is
            only attempted when it returns something
        tick_interval: Seconds between countdown ticks
    """

    def __init__(
        self,
        store: LocalSessionStore,
        sync_client: Optional[Any] = None,
        identity_provider: Optional[Callable[[], Any]] = None,
        tick_interval: float = 1.0,
    ):
        self.store = store
        self.sync_client = sync_client
        self.identity_provider = identity_provider

        self._phase = SessionPhase.IDLE
        self._energy_level: Optional[EnergyLevel] = None
        self._activity: Optional[Activity] = None
        self._show_reflection = False
        self._countdown: Optional[Countdown] = None

        self._ticker = Ticker(self._on_tick, interval=tick_interval)
        self._listeners: list[Listener] = []
        self._pending_syncs: set[asyncio.Task] = set()
        self._lock = threading.RLock()
        self._disposed = False

    # ---- Read-only state ----

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def energy_level(self) -> Optional[EnergyLevel]:
        return self._energy_level

    @property
    def activity(self) -> Optional[Activity]:
        return self._activity

    @property
    def show_reflection(self) -> bool:
        return self._show_reflection

    @property
    def timer(self):
        """The TimerState of the current run, or None outside the timer sub-flow."""
        return self._countdown.state if self._countdown else None

    @property
    def ticking(self) -> bool:
        return self._ticker.active

    @property
    def pending_syncs(self) -> int:
        return len(self._pending_syncs)

    def snapshot(self) -> dict:
        """Return a plain-dict view of the whole session state."""
        with self._lock:
            recommendation = get_recommendation(self._energy_level)
            timer = None
            if self._countdown is not None:
                timer = self._countdown.state.to_dict()
                timer["remaining_display"] = format_remaining(self._countdown.remaining_seconds)

            return {
                "phase": self._phase.value,
                "energy_level": self._energy_level.value if self._energy_level else None,
                "activity": self._activity.value if self._activity else None,
                "recommendation": recommendation.to_dict() if recommendation else None,
                "show_reflection": self._show_reflection,
                "timer": timer,
                "suggested_break_minutes": self._suggested_break(),
            }

    def _suggested_break(self) -> Optional[int]:
        if (
            self._countdown is not None
            and self._countdown.is_complete
            and self._countdown.state.pomodoro_enabled
            and self._activity == Activity.STUDY
        ):
            return POMODORO_BREAK_MINUTES
        return None

    # ---- Change notification ----

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after every change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"[SESSION] State listener failed: {e}")

    # ---- Transitions ----

    def restore(self) -> dict:
        """Re-enter the flow from the locally stored session, if any."""
        with self._lock:
            session = self.store.load()
            if session.energy_level is None:
                if session.activity is not None:
                    logger.warning("[SESSION] Stored activity without energy level, ignoring it")
                return self.snapshot()

            self._energy_level = session.energy_level
            self._activity = session.activity
            if session.activity is None:
                self._phase = SessionPhase.ENERGY_CHOSEN
            elif session.activity == Activity.REFLECT:
                self._phase = SessionPhase.REFLECTION
                self._show_reflection = True
            else:
                self._phase = SessionPhase.ACTIVITY_CHOSEN

            logger.info(f"[SESSION] Restored phase={self._phase.value}")

        self._notify()
        return self.snapshot()

    def select_energy(self, level: Union[EnergyLevel, str]) -> dict:
        """Record a check-in. Restarts the activity stage from any phase."""
        level = EnergyLevel(level)
        with self._lock:
            self._ensure_alive("select energy")
            self._clear_activity_stage()
            self._energy_level = level
            self._phase = SessionPhase.ENERGY_CHOSEN
            self.store.save(self._energy_level, None)
            logger.info(f"[SESSION] Energy selected: {level.value}")

        self._notify()
        return self.snapshot()

    def select_activity(self, activity: Union[Activity, str]) -> dict:
        """Choose what to do with the current energy level."""
        activity = Activity(activity)
        with self._lock:
            self._ensure_alive("select activity")
            if self._energy_level is None:
                raise InvalidTransitionError(
                    "select activity", self._phase.value, "no energy level selected"
                )

            self._clear_activity_stage()
            self._activity = activity
            if activity == Activity.REFLECT:
                self._show_reflection = True
                self._phase = SessionPhase.REFLECTION
            else:
                self._phase = SessionPhase.ACTIVITY_CHOSEN
            self.store.save(self._energy_level, self._activity)
            logger.info(f"[SESSION] Activity selected: {activity.value}")

        self._notify()
        return self.snapshot()

    def start_timer(
        self,
        duration_minutes: Optional[int] = None,
        pomodoro: bool = False,
    ) -> dict:
        """
        Configure a countdown for the chosen study or rest activity.

        The countdown starts stopped; ``toggle_play_pause`` begins counting.

        Raises:
            InvalidTransitionError: Outside the timer sub-flow or for reflect
            ValueError: If the duration is not 5-90 in steps of 5
        """
        with self._lock:
            self._ensure_alive("start timer")
            self._require_phase(
                "start timer",
                SessionPhase.ACTIVITY_CHOSEN,
                SessionPhase.TIMER_RUNNING,
                SessionPhase.TIMER_COMPLETE,
            )
            if self._activity not in TIMED_ACTIVITIES:
                raise InvalidTransitionError(
                    "start timer", self._phase.value, f"activity '{self._activity}' has no timer"
                )

            countdown = Countdown(
                duration_minutes if duration_minutes is not None else DEFAULT_DURATION_MINUTES,
                pomodoro_enabled=pomodoro,
            )
            self._ticker.stop()
            self._countdown = countdown
            self._phase = SessionPhase.TIMER_RUNNING
            logger.info(
                f"[TIMER] Configured {countdown.state.duration_minutes} min "
                f"{self._activity.value} timer (pomodoro={pomodoro})"
            )

        self._notify()
        return self.snapshot()

    def toggle_play_pause(self) -> dict:
        """Start or pause the countdown."""
        with self._lock:
            self._ensure_alive("toggle timer")
            self._require_phase("toggle timer", SessionPhase.TIMER_RUNNING)

            running = self._countdown.toggle()
            if running:
                self._ticker.start()
            else:
                self._ticker.stop()
            logger.info(
                f"[TIMER] {'Resumed' if running else 'Paused'} with "
                f"{self._countdown.remaining_seconds}s remaining"
            )

        self._notify()
        return self.snapshot()

    def tick(self) -> bool:
        """
        Apply one elapsed second to a running countdown.

        Returns:
            True only on the tick that completed the countdown
        """
        with self._lock:
            if self._disposed or self._phase != SessionPhase.TIMER_RUNNING or self._countdown is None:
                return False
            if not self._countdown.is_running:
                return False

            completed = self._countdown.tick()
            if completed:
                self._ticker.stop()
                self._phase = SessionPhase.TIMER_COMPLETE
                logger.info(f"[TIMER] {self._activity.value.title()} timer complete")

        self._notify()
        return completed

    def _on_tick(self) -> bool:
        self.tick()
        with self._lock:
            return (
                not self._disposed
                and self._countdown is not None
                and self._countdown.is_running
            )

    def reset_timer(self) -> dict:
        """Rewind the countdown to its configured duration, stopped."""
        with self._lock:
            self._ensure_alive("reset timer")
            self._require_phase("reset timer", SessionPhase.TIMER_RUNNING, SessionPhase.TIMER_COMPLETE)
            self._ticker.stop()
            self._countdown.restart()
            self._phase = SessionPhase.TIMER_RUNNING
            logger.info("[TIMER] Reset")

        self._notify()
        return self.snapshot()

    def request_feedback(self) -> dict:
        with self._lock:
            self._ensure_alive("request feedback")
            self._require_phase("request feedback", SessionPhase.TIMER_COMPLETE)
            self._phase = SessionPhase.FEEDBACK_PROMPT

        self._notify()
        return self.snapshot()

    def submit_feedback(
        self,
        choice: Optional[Union[FeedbackChoice, str]] = None,
    ) -> CompletedSession:
        """
        Close the cycle with optional feedback and return to idle.

        ``None`` skips feedback. A preset choice is stored by its value and any
        other string is kept as free text. When an identity is present one
        detached sync attempt is launched; its outcome never affects this call.

        Returns:
            The completed session handed to the sync client
        """
        with self._lock:
            self._ensure_alive("submit feedback")
            self._require_phase("submit feedback", SessionPhase.FEEDBACK_PROMPT)

            completed = CompletedSession(
                energy_level=self._energy_level,
                activity=self._activity,
                duration_minutes=self._countdown.state.duration_minutes if self._countdown else None,
                feedback=_normalize_feedback(choice),
            )

        if self.sync_client is not None and self._identity_present():
            self._launch_detached(self.sync_client.sync(completed), "session sync")
        else:
            logger.debug("[SESSION] No identity, keeping completed session local only")

        self.reset()
        return completed

    def reset(self) -> dict:
        """Clear everything and delete the stored session."""
        with self._lock:
            self._clear_activity_stage()
            self._energy_level = None
            self._phase = SessionPhase.IDLE
            self.store.clear()
            logger.info("[SESSION] Reset to idle")

        self._notify()
        return self.snapshot()

    def dispose(self) -> None:
        """Stop ticking for good. Later ticks and intents have no effect."""
        with self._lock:
            self._disposed = True
            self._ticker.stop()
            if self._countdown is not None:
                self._countdown.pause()
        self._listeners.clear()
        logger.debug("[SESSION] Disposed")

    # ---- Helpers ----

    def _clear_activity_stage(self) -> None:
        self._ticker.stop()
        self._activity = None
        self._countdown = None
        self._show_reflection = False

    def _require_phase(self, operation: str, *allowed: SessionPhase) -> None:
        if self._phase not in allowed:
            raise InvalidTransitionError(operation, self._phase.value)

    def _ensure_alive(self, operation: str) -> None:
        if self._disposed:
            raise InvalidTransitionError(operation, self._phase.value, "session disposed")

    def _identity_present(self) -> bool:
        if self.identity_provider is None:
            return False
        try:
            return self.identity_provider() is not None
        except Exception as e:
            logger.warning(f"[SESSION] Identity lookup failed, skipping sync: {e}")
            return False

    def _launch_detached(self, coro: Awaitable, label: str) -> None:
        """
        Run ``coro`` without waiting for it.

        On a running loop it becomes a task kept alive in ``_pending_syncs``
        until done. Without a loop it runs on a daemon thread.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            def run() -> None:
                try:
                    asyncio.run(coro)
                except Exception as e:
                    logger.warning(f"[SESSION] Detached {label} failed: {e}")

            threading.Thread(target=run, name=label, daemon=True).start()
            return

        task = loop.create_task(coro)
        self._pending_syncs.add(task)

        def done(finished: asyncio.Task) -> None:
            self._pending_syncs.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                logger.warning(f"[SESSION] Detached {label} failed: {error}")
            elif finished.result() is False:
                logger.info(f"[SESSION] Detached {label} did not complete, session kept locally")

        task.add_done_callback(done)


def _normalize_feedback(choice: Optional[Union[FeedbackChoice, str]]) -> Optional[str]:
    if choice is None:
        return None
    if isinstance(choice, FeedbackChoice):
        return choice.value
    text = str(choice).strip()
    return text or None
