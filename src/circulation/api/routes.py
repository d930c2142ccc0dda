"""JSON endpoints for the daily snapshot series and the latest circulation."""

from datetime import date, datetime, time, timezone

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from circulation.data.store import CirculationStore
from circulation.models import Circulation, CirculationFigures, Snapshot, to_ms

router = APIRouter()


def _figures_to_dict(figures: CirculationFigures) -> dict[str, str]:
    """Decimal figures rendered as strings to keep full precision in JSON."""
    return {
        "total_supply": str(figures.total_supply),
        "reward": str(figures.reward),
        "phala_chain_bridge": str(figures.phala_chain_bridge),
        "khala_chain_bridge": str(figures.khala_chain_bridge),
        "sygma_bridge": str(figures.sygma_bridge),
        "portal_bridge": str(figures.portal_bridge),
        "circulation": str(figures.circulation),
    }


def _snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        "id": snapshot.id,
        "block_height": snapshot.block_height,
        "timestamp": snapshot.id,
        **_figures_to_dict(snapshot.figures),
    }


def _circulation_to_dict(circulation: Circulation) -> dict:
    return {
        "block_height": circulation.block_height,
        "timestamp": circulation.timestamp.isoformat(),
        "timestamp_ms": to_ms(circulation.timestamp),
        **_figures_to_dict(circulation.figures),
    }


def _parse_bound(value: str | None, name: str) -> int | None:
    """Accept a Unix-ms integer or an ISO date/datetime; return Unix ms."""
    if value is None:
        return None
    if value.isdigit():
        return int(value)
    try:
        if len(value) == 10:
            moment = datetime.combine(date.fromisoformat(value), time(), tzinfo=timezone.utc)
        else:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=f"Invalid {name}: {value}") from e
    return to_ms(moment)


def _store(request: Request) -> CirculationStore:
    store = request.app.state.store
    if store is None:
        raise HTTPException(status_code=503, detail="Store not ready")
    return store


@router.get("/circulation")
async def get_circulation(request: Request) -> JSONResponse:
    """Latest circulation record."""
    circulation = await _store(request).get_circulation()
    if circulation is None:
        raise HTTPException(status_code=404, detail="No circulation recorded yet")
    return JSONResponse(content=_circulation_to_dict(circulation))


@router.get("/snapshots")
async def get_snapshots(
    request: Request,
    since: str | None = None,
    until: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=10_000),
) -> JSONResponse:
    """Daily snapshots in ascending day order, optionally bounded."""
    snapshots = await _store(request).get_snapshots(
        since_ms=_parse_bound(since, "since"),
        until_ms=_parse_bound(until, "until"),
        limit=limit,
    )
    return JSONResponse(content=[_snapshot_to_dict(s) for s in snapshots])


@router.get("/snapshots/{snapshot_id}")
async def get_snapshot(request: Request, snapshot_id: str) -> JSONResponse:
    snapshot = await _store(request).get_snapshot(snapshot_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"No snapshot {snapshot_id}")
    return JSONResponse(content=_snapshot_to_dict(snapshot))


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    store = _store(request)
    processed_height = await store.get_processed_height()
    latest = await store.get_latest_snapshot()
    return JSONResponse(
        content={
            "processed_height": processed_height,
            "latest_snapshot": latest.id if latest is not None else None,
        }
    )
