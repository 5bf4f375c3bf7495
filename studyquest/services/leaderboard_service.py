from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging
import math
from datetime import timedelta
from typing import Dict, Optional

from studyquest.core.clock import Clock
from studyquest.core.config import settings
from studyquest.core.exceptions import LeaderboardUnavailableError
from studyquest.crud import rank_crud, user_crud
from studyquest.models.user_model import User
from studyquest.schemas.leaderboard_schema import LeaderboardEntry, LeaderboardPage, Pagination
from studyquest.services.rank_snapshot_service import classify_rank_change

logger = logging.getLogger(__name__)


def display_name(name: Optional[str]) -> str:
    """'Ada Lovelace' -> 'Ada L.'; a single name is shown as is."""
    parts = (name or "").split()
    if not parts:
        return "Anonymous"
    if len(parts) == 1:
        return parts[0]
    return f"{parts[0]} {parts[-1][0].upper()}."


def _to_entry(user: User, rank: int, previous_ranks: Dict[int, int], requesting_user_id: Optional[int]) -> LeaderboardEntry:
    rank_change, change_type = classify_rank_change(previous_ranks.get(user.id), rank)
    return LeaderboardEntry(
        rank=rank,
        user_id=user.id,
        display_name=display_name(user.name),
        total_xp=user.total_xp,
        level=user.level,
        current_streak=user.current_streak or 0,
        rank_change=rank_change,
        rank_change_type=change_type,
        is_current_user=user.id == requesting_user_id,
    )


def get_leaderboard(
    db: Session,
    clock: Clock,
    requesting_user_id: Optional[int] = None,
    page: int = 1,
    page_size: int = None,
) -> LeaderboardPage:
    """
    One page of the live ranking. Ranks use the same total order as the daily
    snapshot (XP desc, id asc) and are offset by the page, and rank changes are
    measured against yesterday's snapshot. A requester who is not on the page
    gets their own entry computed directly.
    """
    page_size = page_size or settings.LEADERBOARD_DEFAULT_PAGE_SIZE
    if page < 1 or not 1 <= page_size <= settings.LEADERBOARD_MAX_PAGE_SIZE:
        raise ValueError(f"Invalid pagination: page={page}, page_size={page_size}")
    offset = (page - 1) * page_size

    try:
        total_users = user_crud.count_learners(db)
        learners = user_crud.get_ranked_learners(db, skip=offset, limit=page_size)

        yesterday = rank_crud.get_snapshot_by_date(db, clock.today() - timedelta(days=1))
        previous_ranks = rank_crud.get_snapshot_ranks(db, yesterday.id) if yesterday else {}

        entries = [
            _to_entry(learner, offset + position + 1, previous_ranks, requesting_user_id)
            for position, learner in enumerate(learners)
        ]

        current_user_entry = None
        if requesting_user_id is not None and not any(e.user_id == requesting_user_id for e in entries):
            requester = user_crud.get_user_by_id(db, requesting_user_id)
            if requester is not None:
                own_rank = user_crud.get_learner_rank(db, requester)
                if own_rank is not None:
                    current_user_entry = _to_entry(requester, own_rank, previous_ranks, requesting_user_id)

        latest = rank_crud.get_latest_snapshot(db)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load leaderboard page {page}: {e}", exc_info=True)
        raise LeaderboardUnavailableError("Leaderboard is temporarily unavailable. Please retry shortly.") from e

    total_pages = math.ceil(total_users / page_size) if total_users else 0
    logger.debug(f"Leaderboard page {page}/{total_pages} served with {len(entries)} entries")
    return LeaderboardPage(
        entries=entries,
        current_user_entry=current_user_entry,
        pagination=Pagination(
            current_page=page,
            page_size=page_size,
            total_pages=total_pages,
            total_users=total_users,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        ),
        last_updated=latest.created_at if latest else None,
    )
