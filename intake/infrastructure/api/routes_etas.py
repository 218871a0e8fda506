"""ETA endpoint — rolling per-practice stage durations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from intake.infrastructure.api.dependencies import Container, get_container

router = APIRouter(prefix="/etas", tags=["etas"])


@router.get("")
async def list_etas(practice: str | None = None, container: Container = Depends(get_container)):
    result = await container.eta.estimates(practice)
    if not result.ok:
        raise HTTPException(status_code=503, detail=result.error)

    return {
        "total": len(result.value),
        "etas": [
            {
                "practice": e.practice,
                "transition": e.transition.value,
                "avg_duration_hours": round(e.avg_duration_hours, 2),
                "sample_count": e.sample_count,
            }
            for e in result.value
        ],
    }
