from studyquest.core.config import settings
from studyquest.schemas.progress_schema import LevelProgress


def level_for_xp(total_xp: int, xp_per_level: int = None) -> int:
    """level = floor(total_xp / XP_PER_LEVEL) + 1, uncapped."""
    per_level = xp_per_level or settings.XP_PER_LEVEL
    return max(total_xp or 0, 0) // per_level + 1


def level_progress(total_xp: int, xp_per_level: int = None) -> LevelProgress:
    per_level = xp_per_level or settings.XP_PER_LEVEL
    total = max(total_xp or 0, 0)
    current_level_xp = total % per_level
    return LevelProgress(
        level=level_for_xp(total, per_level),
        total_xp=total,
        current_level_xp=current_level_xp,
        xp_for_next_level=per_level - current_level_xp,
        progress_percentage=round(current_level_xp / per_level * 100, 1),
    )
