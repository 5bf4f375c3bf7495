from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from studyquest.core.exceptions import LeaderboardUnavailableError
from studyquest.crud import rank_crud
from studyquest.models.enums import RankChangeType
from studyquest.services import leaderboard_service
from studyquest.services.leaderboard_service import display_name, get_leaderboard
from studyquest.services.rank_snapshot_service import run_daily_snapshot


@pytest.mark.parametrize("name, expected", [
    ("Ada Lovelace", "Ada L."),
    ("grace brewster hopper", "grace H."),
    ("Plato", "Plato"),
    ("   ", "Anonymous"),
    (None, "Anonymous"),
])
def test_display_name(name, expected):
    assert display_name(name) == expected


def test_pages_are_ranked_by_offset(db, make_user, clock):
    users = [make_user(name=f"Learner {i}", total_xp=1000 - i * 10) for i in range(5)]

    first = get_leaderboard(db, clock, page=1, page_size=2)
    second = get_leaderboard(db, clock, page=2, page_size=2)
    last = get_leaderboard(db, clock, page=3, page_size=2)

    assert [(e.rank, e.user_id) for e in first.entries] == [(1, users[0].id), (2, users[1].id)]
    assert [(e.rank, e.user_id) for e in second.entries] == [(3, users[2].id), (4, users[3].id)]
    assert [e.rank for e in last.entries] == [5]
    assert first.pagination.total_pages == 3
    assert first.pagination.total_users == 5
    assert first.pagination.has_next_page and not first.pagination.has_previous_page
    assert not last.pagination.has_next_page


def test_requester_off_the_page_gets_own_entry(db, make_user, clock):
    make_user(total_xp=300)
    make_user(total_xp=200)
    me = make_user(name="Ada Lovelace", total_xp=100)

    page = get_leaderboard(db, clock, requesting_user_id=me.id, page=1, page_size=2)

    assert me.id not in [e.user_id for e in page.entries]
    assert page.current_user_entry.rank == 3
    assert page.current_user_entry.display_name == "Ada L."
    assert page.current_user_entry.is_current_user


def test_requester_on_the_page_is_flagged(db, make_user, clock):
    me = make_user(total_xp=300)
    make_user(total_xp=200)

    page = get_leaderboard(db, clock, requesting_user_id=me.id, page=1, page_size=10)

    assert page.current_user_entry is None
    assert [e.is_current_user for e in page.entries] == [True, False]


def test_off_page_rank_agrees_with_snapshot_on_ties(db, make_user, clock):
    make_user(total_xp=500)
    tied = [make_user(total_xp=200) for _ in range(3)]
    run_daily_snapshot(db, clock)
    snapshot = rank_crud.get_snapshot_by_date(db, clock.today())
    snapshot_ranks = rank_crud.get_snapshot_ranks(db, snapshot.id)

    for user in tied:
        page = get_leaderboard(db, clock, requesting_user_id=user.id, page=1, page_size=1)
        assert page.current_user_entry.rank == snapshot_ranks[user.id]

    live = get_leaderboard(db, clock, page=1, page_size=10)
    assert {e.user_id: e.rank for e in live.entries} == snapshot_ranks


def test_rank_change_is_measured_against_yesterday(db, make_user, clock):
    leader = make_user(total_xp=500)
    climber = make_user(total_xp=100)
    clock.set_day(date(2024, 1, 10))
    run_daily_snapshot(db, clock)

    climber.total_xp = 900
    db.commit()
    clock.set_day(date(2024, 1, 11))
    page = get_leaderboard(db, clock)

    by_user = {e.user_id: e for e in page.entries}
    assert (by_user[climber.id].rank, by_user[climber.id].rank_change, by_user[climber.id].rank_change_type) == (1, 1, RankChangeType.UP)
    assert by_user[leader.id].rank_change_type == RankChangeType.DOWN
    assert page.last_updated is not None


def test_without_yesterday_everyone_is_new(db, make_user, clock):
    make_user(total_xp=10)
    page = get_leaderboard(db, clock)
    assert [e.rank_change_type for e in page.entries] == [RankChangeType.NEW]
    assert page.last_updated is None


def test_database_errors_become_unavailable(db, make_user, clock, monkeypatch):
    make_user(total_xp=10)

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection reset"))

    monkeypatch.setattr(leaderboard_service.user_crud, "get_ranked_learners", broken)
    with pytest.raises(LeaderboardUnavailableError):
        get_leaderboard(db, clock)


def test_invalid_pagination(db, clock):
    with pytest.raises(ValueError):
        get_leaderboard(db, clock, page=0)
