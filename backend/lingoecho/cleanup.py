from __future__ import annotations
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy import delete, or_
from sqlalchemy.orm import Session

from .models import AuthSession
from .settings import settings


def purge_idle_auth_sessions(db: Session, ttl_days: Optional[int] = None) -> List[str]:
	"""Delete auth sessions idle for longer than the TTL and return their ids."""
	days = settings.auth_session_ttl_days if ttl_days is None else ttl_days
	threshold = datetime.utcnow() - timedelta(days=days)
	# Rows from before last_activity_at existed fall back to created_at
	stale = or_(
		AuthSession.last_activity_at < threshold,
		(AuthSession.last_activity_at.is_(None)) & (AuthSession.created_at < threshold),
	)
	session_ids = [row.session_id for row in db.query(AuthSession.session_id).filter(stale).all()]
	if session_ids:
		db.execute(delete(AuthSession).where(AuthSession.session_id.in_(session_ids)))
	db.commit()
	return session_ids
