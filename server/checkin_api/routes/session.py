"""Energy check-in and activity API routes."""
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
import json

from energy_session import get_recommendation

from ..models.session import (
    ActivityRequest,
    EnergyRequest,
    RecommendationView,
    SessionSnapshot,
)
from ..services import CheckinServices, get_services

router = APIRouter(prefix="/api/session", tags=["Session"])


@router.get("", response_model=SessionSnapshot)
async def get_session(services: CheckinServices = Depends(get_services)):
    """Get the current session state."""
    return services.machine.snapshot()


@router.post("/energy", response_model=SessionSnapshot)
async def select_energy(
    request: EnergyRequest,
    services: CheckinServices = Depends(get_services),
):
    """Record an energy check-in. Discards any in-progress activity."""
    return services.machine.select_energy(request.level)


@router.post("/activity", response_model=SessionSnapshot)
async def select_activity(
    request: ActivityRequest,
    services: CheckinServices = Depends(get_services),
):
    """Choose study, rest or reflect. Requires an energy check-in first."""
    return services.machine.select_activity(request.activity)


@router.post("/reset", response_model=SessionSnapshot)
async def reset_session(services: CheckinServices = Depends(get_services)):
    """Start over: clear the session and the locally stored record."""
    return services.machine.reset()


@router.get("/recommendation", response_model=RecommendationView | None)
async def get_session_recommendation(services: CheckinServices = Depends(get_services)):
    """Get the recommendation for the current energy level, if any."""
    recommendation = get_recommendation(services.machine.energy_level)
    return recommendation.to_dict() if recommendation else None


@router.get("/stream")
async def stream_session(
    include_latest: bool = Query(True, description="Send the current state on connect"),
    services: CheckinServices = Depends(get_services),
):
    """
    Stream session snapshots via Server-Sent Events (SSE).

    A snapshot is sent after every transition and every timer tick, so the
    front end can render the countdown without polling.

    Usage with JavaScript:
        const source = new EventSource('/api/session/stream');
        source.addEventListener('state', (event) => render(JSON.parse(event.data)));
    """
    async def event_generator():
        async for event in services.stream.subscribe(include_latest=include_latest):
            data = json.dumps(event.to_dict())
            yield f"event: state\ndata: {data}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )
