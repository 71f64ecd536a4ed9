"""Past sessions (journal) API routes."""
from fastapi import APIRouter, Depends, Query

from cloud_sync import to_journal_entry

from ..models.history import JournalEntry
from ..services import CheckinServices, get_services

router = APIRouter(prefix="/api/history", tags=["History"])


@router.get("", response_model=list[JournalEntry])
async def get_history(
    limit: int = Query(default=20, ge=1, le=50, description="Number of recent sessions"),
    services: CheckinServices = Depends(get_services),
):
    """
    Get the signed-in user's recent sessions, newest first.

    Returns an empty list when signed out or when cloud sync is unavailable.
    """
    records = await services.history.fetch_recent(limit)
    return [to_journal_entry(record) for record in records]
