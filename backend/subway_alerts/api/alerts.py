"""API endpoints serving the current alert snapshot.

The snapshot is produced by the background poller; these endpoints never
trigger a fetch themselves.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from subway_alerts.schemas.alerts import AlertRecord, AlertSnapshot
from subway_alerts.services.alert_feed_service import AlertFeedService

router = APIRouter(tags=["alerts"])
debug_router = APIRouter(prefix="/debug", tags=["debug"])


def get_feed_service(request: Request) -> AlertFeedService:
    """Return the feed service created in the application lifespan."""
    return request.app.state.feed_service


async def require_snapshot(feed: AlertFeedService = Depends(get_feed_service)) -> AlertSnapshot:
    """
    Return the current snapshot.

    Raises:
        HTTPException: 503 if no snapshot has been produced yet (or it expired)
    """
    snapshot = await feed.get_snapshot()
    if snapshot is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Alert data is not available yet",
        )
    return snapshot


# ==================== API Endpoints ====================


@router.get("/data", response_model=AlertSnapshot)
async def get_data(snapshot: AlertSnapshot = Depends(require_snapshot)) -> AlertSnapshot:
    """
    Get current and upcoming alerts with the last refresh time.

    Returns:
        Snapshot with ``alerts``, ``upcoming`` and ``lastUpdated``

    Raises:
        HTTPException: 503 if no snapshot is available
    """
    return snapshot


@router.get("/alerts", response_model=list[AlertRecord])
async def get_alerts(snapshot: AlertSnapshot = Depends(require_snapshot)) -> list[AlertRecord]:
    """Get the current (active and admitted cleared) alerts."""
    return snapshot.alerts


@router.get("/upcoming-alerts", response_model=list[AlertRecord])
async def get_upcoming_alerts(snapshot: AlertSnapshot = Depends(require_snapshot)) -> list[AlertRecord]:
    """Get scheduled future alerts."""
    return snapshot.upcoming


@debug_router.get("/cache")
async def get_cache_state(feed: AlertFeedService = Depends(get_feed_service)) -> dict[str, Any]:
    """
    Inspect the cached snapshot (DEBUG only).

    Unlike the public endpoints, this answers 200 with ``snapshot: null`` when
    nothing has been cached yet.
    """
    snapshot = await feed.get_snapshot()
    return {
        "serverTime": datetime.now(UTC).isoformat(),
        "snapshot": snapshot.model_dump(mode="json", by_alias=True) if snapshot else None,
    }
