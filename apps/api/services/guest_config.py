"""
Guest play limits (single 'default' row) and guest session statistics.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import GuestConfig, GuestSession
from schemas import GuestConfigUpdate
from services.cron_logger import utcnow

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_ID = "default"

# Columns that may be explicitly cleared with null
NULLABLE_FIELDS = {
    "random_game_max_categories_before_auth",
    "random_game_max_rounds_before_auth",
    "random_question_max_categories_before_auth",
    "daily_challenge_seasons",
}


def get_or_create_config(db: Session) -> GuestConfig:
    config = db.query(GuestConfig).first()
    if config is None:
        config = GuestConfig(id=DEFAULT_CONFIG_ID)
        db.add(config)
        db.flush()
        db.refresh(config)
        logger.info("Created default guest config")
    return config


def update_config(db: Session, update: GuestConfigUpdate) -> GuestConfig:
    """Apply only the fields present in the request."""
    config = get_or_create_config(db)
    changes = update.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if value is None and field not in NULLABLE_FIELDS:
            continue
        setattr(config, field, value)
    db.flush()
    db.refresh(config)
    logger.info(f"Guest config updated: {sorted(changes)}")
    return config


def guest_session_stats(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    day_ago = now - timedelta(hours=24)

    def count(*criteria) -> int:
        return db.query(func.count(GuestSession.id)).filter(*criteria).scalar() or 0

    active = count(
        GuestSession.expires_at > now,
        GuestSession.claimed_at.is_(None),
        GuestSession.claimed_by_user_id.is_(None),
    )
    claimed = count(GuestSession.claimed_at.isnot(None))
    expired = count(GuestSession.expires_at <= now, GuestSession.claimed_at.is_(None))

    by_type_rows = (
        db.query(GuestSession.type, func.count(GuestSession.id))
        .filter(GuestSession.expires_at > now, GuestSession.claimed_at.is_(None))
        .group_by(GuestSession.type)
        .all()
    )

    recent_unclaimed = count(
        GuestSession.created_at >= day_ago,
        GuestSession.expires_at > now,
        GuestSession.claimed_at.is_(None),
    )
    recent_claimed = count(GuestSession.claimed_at >= day_ago)
    recent_total = recent_unclaimed + recent_claimed

    return {
        "active": active,
        "unclaimed": active,
        "claimed": claimed,
        "expired": expired,
        "byType": {session_type: n for session_type, n in by_type_rows},
        "recent": {
            "unclaimed": recent_unclaimed,
            "claimed": recent_claimed,
            "conversionRate": (recent_claimed / recent_total) * 100 if recent_total else 0,
        },
    }
