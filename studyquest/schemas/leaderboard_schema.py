from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime

from studyquest.models.enums import RankChangeType


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    display_name: str = Field(..., description="First name plus family-name initial, e.g. 'Ada L.'")
    total_xp: int
    level: int
    current_streak: int
    rank_change: int = Field(0, description="Positions gained since yesterday's snapshot (negative = dropped)")
    rank_change_type: RankChangeType
    is_current_user: bool = False


class Pagination(BaseModel):
    current_page: int
    page_size: int
    total_pages: int
    total_users: int
    has_next_page: bool
    has_previous_page: bool


class LeaderboardPage(BaseModel):
    entries: List[LeaderboardEntry]
    current_user_entry: Optional[LeaderboardEntry] = Field(None, description="Requester's own entry when it is not on this page")
    pagination: Pagination
    last_updated: Optional[datetime] = Field(None, description="When the latest daily snapshot was written")


class SnapshotRunResult(BaseModel):
    created: bool
    date: date
    total_users: int = 0
    skipped_users: int = 0 # Learners deleted between read and write
    pruned_snapshots: int = 0
    message: str


class SnapshotStatus(BaseModel):
    last_snapshot_date: Optional[date] = None
    last_updated: Optional[datetime] = None
    total_users: int = 0
    improved: int = 0
    declined: int = 0
    unchanged: int = 0
    new: int = 0


class RankHistoryEntry(BaseModel):
    date: date
    rank: int
    total_xp: int

    class Config:
        from_attributes = True
