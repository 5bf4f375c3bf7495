from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict, List, Optional
import logging
from datetime import date

from studyquest.models.rank_model import DailyRankSnapshot, DailyRankEntry, UserRankHistory
from studyquest.models.enums import RankChangeType

logger = logging.getLogger(__name__)


def get_snapshot_by_date(db: Session, snapshot_date: date) -> Optional[DailyRankSnapshot]:
    logger.debug(f"Fetching rank snapshot for {snapshot_date}")
    return db.query(DailyRankSnapshot).filter(DailyRankSnapshot.date == snapshot_date).first()

def get_latest_snapshot(db: Session) -> Optional[DailyRankSnapshot]:
    return db.query(DailyRankSnapshot).order_by(DailyRankSnapshot.date.desc()).first()

def get_snapshot_ranks(db: Session, snapshot_id: int) -> Dict[int, int]:
    """user_id -> rank for one snapshot."""
    rows = db.query(DailyRankEntry.user_id, DailyRankEntry.rank).filter(
        DailyRankEntry.snapshot_id == snapshot_id
    ).all()
    return {user_id: rank for user_id, rank in rows}

def count_entries_by_change_type(db: Session, snapshot_id: int) -> Dict[RankChangeType, int]:
    rows = db.query(DailyRankEntry.rank_change_type, func.count(DailyRankEntry.id)).filter(
        DailyRankEntry.snapshot_id == snapshot_id
    ).group_by(DailyRankEntry.rank_change_type).all()
    return {change_type: count for change_type, count in rows}

def delete_snapshots_before(db: Session, cutoff: date) -> int:
    """Deletes snapshots dated strictly before `cutoff`, entries included. Returns the number of snapshots removed."""
    old_ids = [row[0] for row in db.query(DailyRankSnapshot.id).filter(DailyRankSnapshot.date < cutoff).all()]
    if not old_ids:
        return 0
    # Entries are removed explicitly so pruning does not depend on the database enforcing ON DELETE CASCADE
    db.query(DailyRankEntry).filter(DailyRankEntry.snapshot_id.in_(old_ids)).delete(synchronize_session=False)
    deleted = db.query(DailyRankSnapshot).filter(DailyRankSnapshot.id.in_(old_ids)).delete(synchronize_session=False)
    logger.info(f"Pruned {deleted} rank snapshot(s) older than {cutoff}.")
    return deleted


# --- Per-user rank history ---

def upsert_rank_history(db: Session, user_id: int, history_date: date, rank: int, total_xp: int) -> UserRankHistory:
    row = db.query(UserRankHistory).filter(
        UserRankHistory.user_id == user_id,
        UserRankHistory.date == history_date
    ).first()
    if row is None:
        row = UserRankHistory(user_id=user_id, date=history_date, rank=rank, total_xp=total_xp)
        db.add(row)
    else:
        row.rank = rank
        row.total_xp = total_xp
    return row

def trim_rank_history(db: Session, user_id: int, keep: int) -> int:
    """Keeps only the `keep` most recent history rows of a user."""
    stale_ids = [
        row[0] for row in db.query(UserRankHistory.id).filter(
            UserRankHistory.user_id == user_id
        ).order_by(UserRankHistory.date.desc()).offset(keep).all()
    ]
    if not stale_ids:
        return 0
    return db.query(UserRankHistory).filter(UserRankHistory.id.in_(stale_ids)).delete(synchronize_session=False)

def get_rank_history(db: Session, user_id: int, limit: Optional[int] = None) -> List[UserRankHistory]:
    """A user's rank history, newest first."""
    query = db.query(UserRankHistory).filter(UserRankHistory.user_id == user_id).order_by(UserRankHistory.date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
