from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .models import Attempt, AttemptResponse
from .settings import settings

logger = logging.getLogger(__name__)


def purge_stale_attempts(db: Session, *, now: Optional[datetime] = None, retention_days: Optional[int] = None) -> int:
	days = retention_days if retention_days is not None else settings.attempt_retention_days
	threshold = (now or datetime.utcnow()) - timedelta(days=days)
	stale_ids = [row.attempt_id for row in db.query(Attempt.attempt_id).filter(Attempt.updated_at < threshold).all()]
	if not stale_ids:
		return 0
	# Responses first so this works on connections without foreign key enforcement
	db.execute(delete(AttemptResponse).where(AttemptResponse.attempt_id.in_(stale_ids)))
	res = db.execute(delete(Attempt).where(Attempt.attempt_id.in_(stale_ids)))
	db.commit()
	removed = res.rowcount or 0
	logger.info("purged %d stale attempt(s) older than %d days", removed, days)
	return removed
