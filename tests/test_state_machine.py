"""
Unit tests for the session/timer state machine.

These tests verify:
1. Energy and activity transitions and their persistence
2. Countdown ticks, completion, pause/resume and reset
3. Feedback closing a cycle and launching remote sync without waiting
4. Cooperative ticking on a running event loop, and disposal

Usage:
    pytest tests/test_state_machine.py -v
"""
import asyncio
import time
import pytest
from unittest.mock import AsyncMock

from energy_session import (
    Activity,
    EnergyLevel,
    FeedbackChoice,
    InvalidTransitionError,
    LocalSessionStore,
    SessionPhase,
    SessionStateMachine,
)


# ============================================================================
# Energy & Activity Selection
# ============================================================================


class TestEnergySelection:
    """Test the check-in stage."""

    @pytest.mark.parametrize("level", ["low", "medium", "high"])
    def test_select_energy_sets_level_and_clears_activity(self, machine, level):
        """Selecting energy yields that level and no activity."""
        machine.select_energy(level)

        assert machine.energy_level == EnergyLevel(level)
        assert machine.activity is None
        assert machine.phase == SessionPhase.ENERGY_CHOSEN

    def test_snapshot_includes_recommendation(self, machine):
        snapshot = machine.select_energy("low")

        assert snapshot["recommendation"]["primary"] == "rest"
        assert "Rest is productive" in snapshot["recommendation"]["message"]

    def test_new_energy_discards_activity_and_timer(self, machine):
        """A new check-in restarts the activity stage with no carry-over."""
        machine.select_energy("high")
        machine.select_activity("study")
        machine.start_timer(25)
        machine.toggle_play_pause()
        machine.tick()

        machine.select_energy("low")

        assert machine.activity is None
        assert machine.timer is None
        assert machine.phase == SessionPhase.ENERGY_CHOSEN


class TestActivitySelection:
    """Test choosing an activity."""

    def test_activity_without_energy_rejected(self, machine, store):
        """Selecting an activity before a check-in is an invalid transition."""
        with pytest.raises(InvalidTransitionError):
            machine.select_activity("study")

        assert machine.phase == SessionPhase.IDLE
        assert machine.activity is None
        assert store.load().is_empty

    def test_select_study(self, machine):
        machine.select_energy("medium")
        snapshot = machine.select_activity(Activity.STUDY)

        assert machine.phase == SessionPhase.ACTIVITY_CHOSEN
        assert snapshot["activity"] == "study"
        assert snapshot["show_reflection"] is False

    def test_reflect_enters_placeholder(self, machine):
        """Reflect bypasses the timer and shows the reflection placeholder."""
        machine.select_energy("low")
        machine.select_activity("reflect")

        assert machine.phase == SessionPhase.REFLECTION
        assert machine.show_reflection is True
        with pytest.raises(InvalidTransitionError):
            machine.start_timer(25)

    def test_unknown_activity_rejected(self, machine):
        machine.select_energy("low")
        with pytest.raises(ValueError):
            machine.select_activity("nap")


# ============================================================================
# Persistence
# ============================================================================


class TestPersistence:
    """Test local store writes and restore."""

    def test_round_trip_through_fresh_store(self, machine, tmp_path):
        """A fresh store instance sees the last energy/activity choice."""
        machine.select_energy("high")
        machine.select_activity("study")

        reloaded = LocalSessionStore.in_directory(tmp_path).load()

        assert reloaded.energy_level == EnergyLevel.HIGH
        assert reloaded.activity == Activity.STUDY
        assert reloaded.timestamp is not None

    def test_restore_reenters_activity_phase(self, machine, store):
        machine.select_energy("high")
        machine.select_activity("rest")

        restored = SessionStateMachine(store)
        restored.restore()

        assert restored.energy_level == EnergyLevel.HIGH
        assert restored.activity == Activity.REST
        assert restored.phase == SessionPhase.ACTIVITY_CHOSEN

    def test_restore_reflection(self, machine, store):
        machine.select_energy("medium")
        machine.select_activity("reflect")

        restored = SessionStateMachine(store)
        restored.restore()

        assert restored.phase == SessionPhase.REFLECTION
        assert restored.show_reflection is True

    def test_restore_with_nothing_stored(self, machine):
        snapshot = machine.restore()

        assert snapshot["phase"] == "idle"

    @pytest.mark.parametrize("setup", ["idle", "energy", "activity", "timer", "complete", "feedback"])
    def test_reset_from_any_state(self, machine, store, setup):
        """Reset clears all fields and removes the stored record."""
        if setup != "idle":
            machine.select_energy("high")
        if setup in ("activity", "timer", "complete", "feedback"):
            machine.select_activity("study")
        if setup in ("timer", "complete", "feedback"):
            machine.start_timer(5)
            machine.toggle_play_pause()
        if setup in ("complete", "feedback"):
            for _ in range(300):
                machine.tick()
        if setup == "feedback":
            machine.request_feedback()

        machine.reset()

        assert machine.energy_level is None
        assert machine.activity is None
        assert machine.phase == SessionPhase.IDLE
        assert not store.path.exists()
        assert store.load().is_empty


# ============================================================================
# Countdown
# ============================================================================


class TestTimer:
    """Test the timer sub-flow."""

    @pytest.fixture
    def studying(self, machine):
        machine.select_energy("high")
        machine.select_activity("study")
        return machine

    def test_start_timer_sets_remaining(self, studying):
        """A 25 minute timer starts at 1500 seconds and is not running."""
        studying.start_timer(25)

        assert studying.timer.remaining_seconds == 1500
        assert studying.timer.is_running is False
        assert studying.phase == SessionPhase.TIMER_RUNNING

    def test_one_tick_while_running(self, studying):
        studying.start_timer(25)
        studying.toggle_play_pause()
        studying.tick()

        assert studying.timer.remaining_seconds == 1499

    def test_tick_while_paused_has_no_effect(self, studying):
        studying.start_timer(25)
        studying.tick()

        assert studying.timer.remaining_seconds == 1500

    def test_pause_and_resume_preserve_remaining(self, studying):
        studying.start_timer(10)
        studying.toggle_play_pause()
        for _ in range(30):
            studying.tick()
        studying.toggle_play_pause()
        for _ in range(30):
            studying.tick()

        assert studying.timer.remaining_seconds == 570

        studying.toggle_play_pause()
        studying.tick()
        assert studying.timer.remaining_seconds == 569

    def test_completion_happens_exactly_once(self, studying):
        """Reaching zero completes once; further ticks change nothing."""
        studying.start_timer(5)
        studying.toggle_play_pause()

        completions = [studying.tick() for _ in range(300)]

        assert completions.count(True) == 1
        assert completions[-1] is True
        assert studying.timer.remaining_seconds == 0
        assert studying.timer.is_complete is True
        assert studying.timer.is_running is False
        assert studying.phase == SessionPhase.TIMER_COMPLETE

        assert studying.tick() is False
        assert studying.timer.remaining_seconds == 0

    def test_toggle_after_completion_rejected(self, studying):
        studying.start_timer(5)
        studying.toggle_play_pause()
        for _ in range(300):
            studying.tick()

        with pytest.raises(InvalidTransitionError):
            studying.toggle_play_pause()

    def test_reset_timer_restores_duration(self, studying):
        studying.start_timer(45)
        studying.toggle_play_pause()
        for _ in range(100):
            studying.tick()

        studying.reset_timer()

        assert studying.timer.remaining_seconds == 45 * 60
        assert studying.timer.is_running is False
        assert studying.timer.is_complete is False
        assert studying.phase == SessionPhase.TIMER_RUNNING

    def test_reset_timer_after_completion(self, studying):
        studying.start_timer(5)
        studying.toggle_play_pause()
        for _ in range(300):
            studying.tick()

        studying.reset_timer()

        assert studying.timer.is_complete is False
        assert studying.timer.remaining_seconds == 300

    @pytest.mark.parametrize("duration", [0, 3, 95, 27])
    def test_invalid_durations_rejected(self, studying, duration):
        with pytest.raises(ValueError):
            studying.start_timer(duration)
        assert studying.phase == SessionPhase.ACTIVITY_CHOSEN

    def test_default_duration(self, studying):
        studying.start_timer()
        assert studying.timer.duration_minutes == 25

    def test_toggle_before_start_rejected(self, studying):
        with pytest.raises(InvalidTransitionError):
            studying.toggle_play_pause()

    def test_pomodoro_suggests_break(self, studying):
        studying.start_timer(5, pomodoro=True)
        studying.toggle_play_pause()
        for _ in range(300):
            studying.tick()

        assert studying.snapshot()["suggested_break_minutes"] == 5

    def test_no_break_suggestion_without_pomodoro(self, studying):
        studying.start_timer(5)
        studying.toggle_play_pause()
        for _ in range(300):
            studying.tick()

        assert studying.snapshot()["suggested_break_minutes"] is None

    def test_snapshot_remaining_display(self, studying):
        snapshot = studying.start_timer(10)
        assert snapshot["timer"]["remaining_display"] == "10:00"


# ============================================================================
# Feedback & Sync
# ============================================================================


class TestFeedback:
    """Test closing a cycle."""

    def test_request_feedback_only_after_completion(self, machine):
        machine.select_energy("high")
        machine.select_activity("study")
        machine.start_timer(5)

        with pytest.raises(InvalidTransitionError):
            machine.request_feedback()

    def test_skip_feedback_returns_to_idle(self, machine, drive_to_feedback, store):
        drive_to_feedback(machine)
        completed = machine.submit_feedback()

        assert completed.feedback is None
        assert machine.phase == SessionPhase.IDLE
        assert store.load().is_empty

    def test_preset_and_free_text_feedback(self, machine, drive_to_feedback):
        drive_to_feedback(machine)
        assert machine.submit_feedback(FeedbackChoice.COULD_BE_BETTER).feedback == "could_be_better"

        drive_to_feedback(machine)
        assert machine.submit_feedback("  felt focused  ").feedback == "felt focused"

    def test_no_sync_without_identity(self, store, sync_client, drive_to_feedback):
        m = SessionStateMachine(store, sync_client=sync_client, identity_provider=lambda: None)
        drive_to_feedback(m)
        m.submit_feedback(FeedbackChoice.GOOD)

        sync_client.sync.assert_not_called()
        assert m.phase == SessionPhase.IDLE

    @pytest.mark.asyncio
    async def test_sync_launched_once_with_session(self, syncing_machine, sync_client, drive_to_feedback):
        """One detached sync carries energy, activity, duration and feedback."""
        drive_to_feedback(syncing_machine, duration=10)
        syncing_machine.submit_feedback(FeedbackChoice.GOOD)

        await asyncio.sleep(0)
        await asyncio.sleep(0)

        sync_client.sync.assert_awaited_once()
        completed = sync_client.sync.await_args.args[0]
        assert completed.energy_level == EnergyLevel.HIGH
        assert completed.activity == Activity.STUDY
        assert completed.duration_minutes == 10
        assert completed.feedback == "good"
        assert syncing_machine.pending_syncs == 0

    @pytest.mark.asyncio
    async def test_failed_sync_does_not_affect_transition(self, syncing_machine, sync_client, drive_to_feedback):
        sync_client.sync.side_effect = RuntimeError("network down")
        drive_to_feedback(syncing_machine)

        syncing_machine.submit_feedback("okay")

        assert syncing_machine.phase == SessionPhase.IDLE
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert syncing_machine.pending_syncs == 0

    @pytest.mark.asyncio
    async def test_hanging_sync_does_not_block(self, store, identity_holder, drive_to_feedback):
        """submit_feedback returns to idle while the sync is still pending."""
        never = asyncio.Event()

        async def hang(_):
            await never.wait()
            return True

        client = AsyncMock()
        client.sync.side_effect = hang
        m = SessionStateMachine(store, sync_client=client, identity_provider=identity_holder)
        drive_to_feedback(m)

        m.submit_feedback()
        await asyncio.sleep(0)

        assert m.phase == SessionPhase.IDLE
        assert m.pending_syncs == 1

        # Cleanup the detached task
        tasks = list(m._pending_syncs)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await asyncio.sleep(0)
        assert m.pending_syncs == 0

    def test_sync_without_event_loop_runs_in_background(self, syncing_machine, sync_client, drive_to_feedback):
        drive_to_feedback(syncing_machine)
        syncing_machine.submit_feedback()

        assert syncing_machine.phase == SessionPhase.IDLE
        deadline = time.monotonic() + 2.0
        while not sync_client.sync.await_count and time.monotonic() < deadline:
            time.sleep(0.01)
        assert sync_client.sync.await_count == 1


# ============================================================================
# Cooperative Ticking & Listeners
# ============================================================================


class TestTicker:
    """Test the periodic tick on a running loop."""

    @pytest.fixture
    def fast_machine(self, store):
        m = SessionStateMachine(store, tick_interval=0.01)
        yield m
        m.dispose()

    @pytest.mark.asyncio
    async def test_ticker_counts_down_while_running(self, fast_machine):
        fast_machine.select_energy("high")
        fast_machine.select_activity("rest")
        fast_machine.start_timer(5)
        fast_machine.toggle_play_pause()

        assert fast_machine.ticking
        await asyncio.sleep(0.1)

        assert fast_machine.timer.remaining_seconds < 300

    @pytest.mark.asyncio
    async def test_pause_cancels_ticker(self, fast_machine):
        fast_machine.select_energy("high")
        fast_machine.select_activity("study")
        fast_machine.start_timer(5)
        fast_machine.toggle_play_pause()
        await asyncio.sleep(0.05)

        fast_machine.toggle_play_pause()
        paused_at = fast_machine.timer.remaining_seconds
        await asyncio.sleep(0.05)

        assert not fast_machine.ticking
        assert fast_machine.timer.remaining_seconds == paused_at

    @pytest.mark.asyncio
    async def test_ticker_stops_at_completion(self, store):
        m = SessionStateMachine(store, tick_interval=0.0)
        m.select_energy("low")
        m.select_activity("rest")
        m.start_timer(5)
        m.toggle_play_pause()

        for _ in range(2000):
            if m.phase == SessionPhase.TIMER_COMPLETE:
                break
            await asyncio.sleep(0)

        assert m.phase == SessionPhase.TIMER_COMPLETE
        assert m.timer.remaining_seconds == 0
        await asyncio.sleep(0)
        assert not m.ticking
        m.dispose()

    @pytest.mark.asyncio
    async def test_dispose_stops_mutation(self, fast_machine):
        fast_machine.select_energy("high")
        fast_machine.select_activity("study")
        fast_machine.start_timer(5)
        fast_machine.toggle_play_pause()
        await asyncio.sleep(0.03)

        fast_machine.dispose()
        frozen = fast_machine.timer.remaining_seconds
        await asyncio.sleep(0.05)

        assert fast_machine.timer.remaining_seconds == frozen
        assert fast_machine.tick() is False
        with pytest.raises(InvalidTransitionError):
            fast_machine.select_energy("low")


class TestListeners:
    """Test change notifications."""

    def test_listener_receives_snapshots(self, machine):
        received = []
        machine.subscribe(received.append)

        machine.select_energy("medium")
        machine.select_activity("study")

        assert [s["phase"] for s in received] == ["energy_chosen", "activity_chosen"]

    def test_unsubscribe(self, machine):
        received = []
        unsubscribe = machine.subscribe(received.append)
        unsubscribe()

        machine.select_energy("medium")

        assert received == []

    def test_failing_listener_is_isolated(self, machine):
        def broken(_):
            raise RuntimeError("render failed")

        machine.subscribe(broken)
        snapshot = machine.select_energy("high")

        assert snapshot["energy_level"] == "high"
