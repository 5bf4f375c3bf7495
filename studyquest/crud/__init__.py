# This file makes the 'crud' directory a Python package.

from .db_helpers import insert_if_absent

from .user_crud import (
    get_user_by_id,
    get_user_by_email,
    get_user_by_firebase_uid,
    create_user,
    add_xp,
    set_level,
    get_xp_and_level,
    touch_streak,
    get_ranked_learners,
    count_learners,
    get_learner_rank,
    get_existing_user_ids
)

from .user_progress_crud import (
    get_progress,
    ensure_progress_record,
    claim_first_completion,
    claim_daily_reward,
    record_attempt,
    create_bonus_record,
    count_completed,
    average_best_score,
    get_user_progress,
    get_activity_records
)

from .content_crud import (
    get_section_question_ids, get_topic_content_ids, get_question_section_id, get_catalog_structure
)

from .achievement_crud import (
    get_user_achievements, get_unlocked_achievement_ids, unlock_achievement
)

from .xp_ledger_crud import (
    add_entry, get_entries, get_ledger_total
)

from .stats_crud import get_user_stats

from .rank_crud import (
    get_snapshot_by_date, get_latest_snapshot, get_snapshot_ranks, count_entries_by_change_type,
    delete_snapshots_before,
    upsert_rank_history, trim_rank_history, get_rank_history
)


__all__ = [
    "insert_if_absent",

    # User CRUD
    "get_user_by_id", "get_user_by_email", "get_user_by_firebase_uid", "create_user",
    "add_xp", "set_level", "get_xp_and_level", "touch_streak",
    "get_ranked_learners", "count_learners", "get_learner_rank", "get_existing_user_ids",

    # User Progress CRUD
    "get_progress", "ensure_progress_record", "claim_first_completion", "claim_daily_reward",
    "record_attempt", "create_bonus_record", "count_completed", "average_best_score",
    "get_user_progress", "get_activity_records",

    # Content catalog (read-only)
    "get_section_question_ids", "get_topic_content_ids", "get_question_section_id", "get_catalog_structure",

    # Achievement CRUD
    "get_user_achievements", "get_unlocked_achievement_ids", "unlock_achievement",

    # XP ledger CRUD
    "add_entry", "get_entries", "get_ledger_total",

    # Statistics
    "get_user_stats",

    # Rank snapshot / history CRUD
    "get_snapshot_by_date", "get_latest_snapshot", "get_snapshot_ranks", "count_entries_by_change_type",
    "delete_snapshots_before",
    "upsert_rank_history", "trim_rank_history", "get_rank_history",
]
