import pytest

from studyquest.crud import achievement_crud, xp_ledger_crud
from studyquest.models.enums import XPSource
from studyquest.schemas.progress_schema import UserStats
from studyquest.services import achievements, leveling, xp_service


@pytest.mark.parametrize("total_xp, level", [(0, 1), (5, 1), (99, 1), (100, 2), (105, 2), (1455, 15), (123456, 1235)])
def test_level_for_xp(total_xp, level):
    assert leveling.level_for_xp(total_xp) == level


def test_level_progress():
    progress = leveling.level_progress(250)
    assert progress.level == 3
    assert progress.current_level_xp == 50
    assert progress.xp_for_next_level == 50
    assert progress.progress_percentage == 50.0


def test_catalog_ids_are_unique():
    assert len(achievements.ACHIEVEMENTS_BY_ID) == len(achievements.ACHIEVEMENTS)


def test_check_achievements_skips_unlocked():
    stats = UserStats(total_quizzes_completed=10)
    ids = [a.id for a in achievements.check_achievements(stats, set())]
    assert ids == ["first_steps", "knowledge_seeker"]
    ids = [a.id for a in achievements.check_achievements(stats, {"first_steps"})]
    assert ids == ["knowledge_seeker"]


def test_check_achievements_on_level_and_streak():
    stats = UserStats(level=15, current_streak=7)
    ids = {a.id for a in achievements.check_achievements(stats, set())}
    assert ids == {"level_up", "knowledge_master", "streak_starter", "streak_master"}


class TestAwardXP:
    def test_credit_writes_ledger_and_level(self, db, make_user, clock):
        user = make_user(total_xp=95)
        credit = xp_service.award_xp(db, user.id, 10, XPSource.CONTENT, clock, reference="media-1")
        db.commit()

        assert credit.total_xp == 105
        assert credit.old_level == 1 and credit.new_level == 2
        assert credit.leveled_up
        db.refresh(user)
        assert user.level == 2
        entries = xp_ledger_crud.get_entries(db, user.id)
        assert [(e.amount, e.balance_after, e.source) for e in entries] == [(10, 105, XPSource.CONTENT)]

    def test_zero_amount_is_not_recorded(self, db, make_user, clock):
        user = make_user()
        credit = xp_service.award_xp(db, user.id, 0, XPSource.CONTENT, clock)
        assert credit.amount == 0 and not credit.leveled_up
        assert xp_ledger_crud.get_ledger_total(db, user.id) == 0

    def test_unknown_user(self, db, clock):
        from studyquest.core.exceptions import UserNotFoundError
        with pytest.raises(UserNotFoundError):
            xp_service.award_xp(db, 999, 10, XPSource.CONTENT, clock)


class TestEvaluateAchievements:
    def test_level_achievements_cascade(self, db, make_user, clock):
        # 500 XP is level 6: Level Up! (+150) lifts the user to 650, nothing further
        user = make_user(total_xp=500)
        unlocked = achievements.evaluate_achievements(db, user.id, clock)
        db.commit()

        assert [a.id for a in unlocked] == ["level_up"]
        db.refresh(user)
        assert user.total_xp == 650
        assert user.level == 7

    def test_cascade_resolves_until_nothing_new(self, db, make_user, clock):
        # 1400 XP is level 15: Level Up! and Knowledge Master unlock in the same pass
        user = make_user(total_xp=1400)
        unlocked = achievements.evaluate_achievements(db, user.id, clock)
        db.commit()

        assert {a.id for a in unlocked} == {"level_up", "knowledge_master"}
        db.refresh(user)
        assert user.total_xp == 1400 + 150 + 750

    def test_each_achievement_fires_once(self, db, make_user, clock):
        user = make_user(total_xp=500)
        achievements.evaluate_achievements(db, user.id, clock)
        db.commit()
        assert achievements.evaluate_achievements(db, user.id, clock) == []
        assert achievement_crud.get_unlocked_achievement_ids(db, user.id) == {"level_up"}

    def test_unlock_row_is_inserted_once(self, db, make_user, clock):
        user = make_user(total_xp=500)
        assert achievement_crud.unlock_achievement(db, user.id, "level_up", 150, clock.now())
        assert not achievement_crud.unlock_achievement(db, user.id, "level_up", 150, clock.now())

    def test_user_achievements_listing(self, db, make_user, clock):
        user = make_user(total_xp=500)
        achievements.evaluate_achievements(db, user.id, clock)
        db.commit()
        listed = achievements.get_user_achievements(db, user.id)
        assert [a.id for a in listed] == ["level_up"]
        assert listed[0].unlocked_at is not None
