from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.history import DetectionHistory
from app.schemas.history import HistoryResponse, HistoryStats
from app.utils.exceptions import NotFound
from app.utils.response import success_response

router = APIRouter(prefix="/history", tags=["history"])


@router.get("")
async def list_history(q: str | None = None, db: AsyncSession = Depends(get_db)):
    query = select(DetectionHistory).order_by(DetectionHistory.created_at.desc())
    if q and q.strip():
        query = query.where(func.lower(DetectionHistory.pill_name).contains(q.strip().lower()))

    result = await db.execute(query)
    data = [HistoryResponse.model_validate(h).model_dump() for h in result.scalars().all()]
    return success_response(data=data)


@router.get("/stats")
async def history_stats(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(DetectionHistory))
    rows = result.scalars().all()

    week_ago = datetime.now(timezone.utc) - timedelta(days=7)
    recent = [r for r in rows if datetime.fromisoformat(r.created_at) > week_ago]
    average = sum(r.confidence for r in rows) / len(rows) if rows else 0.0

    stats = HistoryStats(
        total=len(rows),
        unique_pills=len({r.pill_name for r in rows}),
        average_confidence=round(average, 4),
        last_7_days=len(recent),
    )
    return success_response(data=stats.model_dump())


@router.delete("/{history_id}")
async def delete_history(history_id: str, db: AsyncSession = Depends(get_db)):
    item = await db.get(DetectionHistory, history_id)
    if not item:
        raise NotFound("Detection record not found")

    await db.delete(item)
    await db.commit()
    return success_response(data={"id": history_id})
