# This package contains the business logic services.

from . import xp_rules
from . import leveling
from . import xp_service
from . import achievements
from . import completion_bonus_service
from . import progress_service
from . import rank_snapshot_service
from . import leaderboard_service

__all__ = [
    "xp_rules",
    "leveling",
    "xp_service",
    "achievements",
    "completion_bonus_service",
    "progress_service",
    "rank_snapshot_service",
    "leaderboard_service",
]
