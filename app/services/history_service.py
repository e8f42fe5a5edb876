import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from app.database import async_session
from app.models.history import DetectionHistory
from app.schemas.detection import DetectionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistorySaveStatus:
    saved: bool
    history_id: str | None = None
    error: str | None = None


async def save_history(result: DetectionResult) -> HistorySaveStatus:
    """Insert one history row for a finished analysis.

    Every call inserts; identical scans are not merged. A database failure is
    logged and reported in the returned status instead of being raised.
    """
    history_id = str(uuid.uuid4())
    try:
        async with async_session() as db_session:
            db_session.add(DetectionHistory(
                id=history_id,
                pill_name=result.name,
                confidence=result.confidence,
                color=result.color,
                shape=result.shape,
                imprint=result.imprint,
                description=result.description,
                usage=result.usage,
                warnings=list(result.warnings),
                created_at=datetime.now(timezone.utc).isoformat(),
            ))
            await db_session.commit()
    except SQLAlchemyError as e:
        logger.exception("Failed to save detection history for %r", result.name)
        return HistorySaveStatus(saved=False, error=str(e))

    logger.info("Detection saved to history: %s", history_id)
    return HistorySaveStatus(saved=True, history_id=history_id)
