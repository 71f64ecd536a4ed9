"""Countdown timer and feedback API routes."""
from fastapi import APIRouter, Depends, HTTPException

from ..models.session import (
    FeedbackRequest,
    FeedbackResult,
    SessionSnapshot,
    TimerStartRequest,
)
from ..services import CheckinServices, get_services

router = APIRouter(prefix="/api/timer", tags=["Timer"])


@router.post("/start", response_model=SessionSnapshot)
async def start_timer(
    request: TimerStartRequest,
    services: CheckinServices = Depends(get_services),
):
    """Configure a countdown for the chosen study or rest activity (starts paused)."""
    try:
        return services.machine.start_timer(request.duration_minutes, pomodoro=request.pomodoro)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/toggle", response_model=SessionSnapshot)
async def toggle_timer(services: CheckinServices = Depends(get_services)):
    """Play or pause the countdown."""
    return services.machine.toggle_play_pause()


@router.post("/reset", response_model=SessionSnapshot)
async def reset_timer(services: CheckinServices = Depends(get_services)):
    """Rewind the countdown to its configured duration."""
    return services.machine.reset_timer()


@router.post("/feedback/request", response_model=SessionSnapshot)
async def request_feedback(services: CheckinServices = Depends(get_services)):
    """Move from a completed timer to the feedback prompt."""
    return services.machine.request_feedback()


@router.post("/feedback", response_model=FeedbackResult)
async def submit_feedback(
    request: FeedbackRequest,
    services: CheckinServices = Depends(get_services),
):
    """
    Close the session with optional feedback.

    Returns immediately. When signed in, the session is synced in the
    background; the response never waits for it.
    """
    sync_attempted = services.auth.current_identity is not None
    completed = services.machine.submit_feedback(request.resolved())
    return {
        "state": services.machine.snapshot(),
        "feedback": completed.feedback,
        "sync_attempted": sync_attempted,
    }
