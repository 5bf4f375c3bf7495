from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging
from datetime import timedelta
from typing import Dict, Optional, Tuple

from studyquest.core.clock import Clock
from studyquest.core.config import settings
from studyquest.core.exceptions import RankSnapshotError
from studyquest.crud import rank_crud, user_crud
from studyquest.models.enums import RankChangeType
from studyquest.models.rank_model import DailyRankSnapshot, DailyRankEntry
from studyquest.schemas.leaderboard_schema import SnapshotRunResult, SnapshotStatus

logger = logging.getLogger(__name__)


def classify_rank_change(previous_rank: Optional[int], rank: int) -> Tuple[int, RankChangeType]:
    """rank_change = previous_rank - rank, so a positive value means the learner moved up."""
    if previous_rank is None:
        return 0, RankChangeType.NEW
    change = previous_rank - rank
    if change > 0:
        return change, RankChangeType.UP
    if change < 0:
        return change, RankChangeType.DOWN
    return 0, RankChangeType.NONE


def run_daily_snapshot(db: Session, clock: Clock) -> SnapshotRunResult:
    """
    Writes today's global standings once. Re-running on the same day is a
    no-op; so is losing a race against a concurrent run (unique date). Any
    other failure rolls the whole run back so it can simply be triggered again.
    """
    today = clock.today()
    if rank_crud.get_snapshot_by_date(db, today) is not None:
        logger.info(f"Rank snapshot for {today} already exists; nothing to do.")
        return SnapshotRunResult(created=False, date=today, message=f"Snapshot for {today} already exists.")

    try:
        learners = user_crud.get_ranked_learners(db)
        yesterday_snapshot = rank_crud.get_snapshot_by_date(db, today - timedelta(days=1))
        previous_ranks: Dict[int, int] = rank_crud.get_snapshot_ranks(db, yesterday_snapshot.id) if yesterday_snapshot else {}
        logger.info(f"Building rank snapshot for {today}: {len(learners)} learners, {len(previous_ranks)} ranks from yesterday")

        snapshot = DailyRankSnapshot(date=today, created_at=clock.now())
        db.add(snapshot)
        db.flush()

        # Accounts removed since the read above are skipped and ranks stay dense over the rest
        still_present = user_crud.get_existing_user_ids(db, [learner.id for learner in learners])
        for learner in learners:
            if learner.id not in still_present:
                logger.warning(f"User {learner.id} was deleted during the snapshot run; skipping.")
        ranked = [learner for learner in learners if learner.id in still_present]

        for rank, learner in enumerate(ranked, start=1):
            previous_rank = previous_ranks.get(learner.id)
            rank_change, change_type = classify_rank_change(previous_rank, rank)
            db.add(DailyRankEntry(
                snapshot_id=snapshot.id,
                user_id=learner.id,
                rank=rank,
                total_xp=learner.total_xp,
                level=learner.level,
                current_streak=learner.current_streak or 0,
                max_streak=learner.max_streak or 0,
                previous_rank=previous_rank,
                rank_change=rank_change,
                rank_change_type=change_type,
            ))
            rank_crud.upsert_rank_history(db, learner.id, today, rank, learner.total_xp)
        db.flush()

        for learner in ranked:
            rank_crud.trim_rank_history(db, learner.id, settings.RANK_HISTORY_LIMIT)

        pruned = rank_crud.delete_snapshots_before(db, today - timedelta(days=settings.SNAPSHOT_RETENTION_DAYS))
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if rank_crud.get_snapshot_by_date(db, today) is None:
            logger.error(f"Rank snapshot for {today} violated a constraint: {e}", exc_info=True)
            raise RankSnapshotError(f"Failed to build rank snapshot for {today}.") from e
        logger.warning(f"Concurrent rank snapshot run for {today} won the unique date constraint; this run is a no-op.")
        return SnapshotRunResult(created=False, date=today, message=f"Snapshot for {today} was written by a concurrent run.")
    except Exception as e:
        db.rollback()
        logger.error(f"Rank snapshot for {today} failed: {e}", exc_info=True)
        raise RankSnapshotError(f"Failed to build rank snapshot for {today}.") from e

    written = len(ranked)
    skipped = len(learners) - written
    logger.info(f"Rank snapshot for {today} written: {written} learners ranked, {skipped} skipped, {pruned} old snapshot(s) pruned.")
    return SnapshotRunResult(
        created=True,
        date=today,
        total_users=written,
        skipped_users=skipped,
        pruned_snapshots=pruned,
        message=f"Ranked {written} learners for {today}.",
    )


def get_snapshot_status(db: Session) -> SnapshotStatus:
    """Summary of the most recent snapshot: how many learners moved up, down, stayed or are new."""
    latest = rank_crud.get_latest_snapshot(db)
    if latest is None:
        return SnapshotStatus()
    counts = rank_crud.count_entries_by_change_type(db, latest.id)
    return SnapshotStatus(
        last_snapshot_date=latest.date,
        last_updated=latest.created_at,
        total_users=sum(counts.values()),
        improved=counts.get(RankChangeType.UP, 0),
        declined=counts.get(RankChangeType.DOWN, 0),
        unchanged=counts.get(RankChangeType.NONE, 0),
        new=counts.get(RankChangeType.NEW, 0),
    )
