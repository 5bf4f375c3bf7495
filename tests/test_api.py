import uuid

from sqlalchemy.exc import OperationalError

from studyquest.core.config import settings
from studyquest.routes import auth_routes
from studyquest.schemas.user_schema import TokenData
from studyquest.services import leaderboard_service
from studyquest.services.achievements import ACHIEVEMENTS


def progress_payload(**overrides):
    payload = {
        "content_id": str(uuid.uuid4()),
        "content_type": "media",
        "topic_id": str(uuid.uuid4()),
        "subject_id": str(uuid.uuid4()),
        "completed": True,
        "score": 100,
        "time_spent": 42,
    }
    payload.update(overrides)
    return payload


def login(auth_state, user):
    auth_state["user"] = user
    return user


class TestProgressEndpoints:
    def test_requires_authentication(self, client):
        response = client.post("/api/v1/progress/update", json=progress_payload())
        assert response.status_code == 401

    def test_first_completion(self, client, auth_state, make_user):
        login(auth_state, make_user(total_xp=95))
        response = client.post("/api/v1/progress/update", json=progress_payload())

        assert response.status_code == 200
        body = response.json()
        assert body["classification"] == "first-time"
        assert body["base_xp"] == 10
        assert body["total_xp"] == 105
        assert body["leveled_up"] is True
        assert body["new_level"] == 2
        assert body["progress"]["completed"] is True

    def test_difficulty_comes_from_typed_data(self, client, auth_state, make_user):
        login(auth_state, make_user())
        payload = progress_payload(data={"content_type": "media", "difficulty": "Advanced", "watch_percentage": 90})
        response = client.post("/api/v1/progress/update", json=payload)
        assert response.status_code == 200
        assert response.json()["base_xp"] == 15

    def test_malformed_identifier_is_rejected(self, client, auth_state, make_user):
        login(auth_state, make_user())
        response = client.post("/api/v1/progress/update", json=progress_payload(content_id="not-a-uuid"))
        assert response.status_code == 422

    def test_data_for_another_content_type_is_rejected(self, client, auth_state, make_user):
        login(auth_state, make_user())
        payload = progress_payload(content_type="question", data={"content_type": "flashcard", "mastery_level": "Mastered"})
        response = client.post("/api/v1/progress/update", json=payload)
        assert response.status_code == 422

    def test_section_is_not_a_reportable_content_type(self, client, auth_state, make_user):
        login(auth_state, make_user())
        response = client.post("/api/v1/progress/update", json=progress_payload(content_type="section"))
        assert response.status_code == 422

    def test_question_in_another_section_is_a_bad_request(self, client, auth_state, make_user, make_catalog):
        login(auth_state, make_user())
        catalog = make_catalog(questions=1)
        payload = progress_payload(
            content_type="question",
            content_id=catalog["question_ids"][0],
            topic_id=catalog["topic_id"],
            subject_id=catalog["subject_id"],
            section_id=str(uuid.uuid4()),
        )
        response = client.post("/api/v1/progress/update", json=payload)
        assert response.status_code == 400
        assert response.json()["detail"].startswith("section_id:")

    def test_score_out_of_range(self, client, auth_state, make_user):
        login(auth_state, make_user())
        response = client.post("/api/v1/progress/update", json=progress_payload(score=101))
        assert response.status_code == 422

    def test_daily_quiz(self, client, auth_state, make_user):
        login(auth_state, make_user())
        first = client.post("/api/v1/progress/daily-quiz", json={"mode": "timed", "score": 65})
        again = client.post("/api/v1/progress/daily-quiz", json={"mode": "timed", "score": 100})

        assert first.status_code == 200
        assert (first.json()["base_xp"], first.json()["performance_bonus"]) == (8, 2)
        assert again.json()["already_completed_today"] is True
        assert again.json()["xp_earned"] == 0


class TestLeaderboardEndpoints:
    def test_anonymous_page(self, client, make_user):
        make_user(name="Ada Lovelace", total_xp=50)
        response = client.get("/api/v1/leaderboard", params={"page": 1, "page_size": 10})

        assert response.status_code == 200
        body = response.json()
        assert body["entries"][0]["display_name"] == "Ada L."
        assert body["current_user_entry"] is None
        assert body["pagination"]["total_users"] == 1

    def test_authenticated_learner_off_page(self, client, auth_state, make_user):
        make_user(total_xp=500)
        me = login(auth_state, make_user(total_xp=5))
        response = client.get("/api/v1/leaderboard", params={"page_size": 1})
        assert response.json()["current_user_entry"]["user_id"] == me.id
        assert response.json()["current_user_entry"]["rank"] == 2

    def test_page_size_is_capped(self, client):
        response = client.get("/api/v1/leaderboard", params={"page_size": settings.LEADERBOARD_MAX_PAGE_SIZE + 1})
        assert response.status_code == 422

    def test_unavailable_leaderboard_asks_client_to_retry(self, client, monkeypatch):
        def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(leaderboard_service.user_crud, "count_learners", broken)
        response = client.get("/api/v1/leaderboard")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"

    def test_rank_trigger_requires_the_shared_secret(self, client, make_user, monkeypatch):
        make_user(total_xp=10)
        monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

        assert client.post("/api/v1/leaderboard/update-ranks").status_code == 401
        assert client.post("/api/v1/leaderboard/update-ranks", headers={"x-api-key": "wrong"}).status_code == 401

        response = client.post("/api/v1/leaderboard/update-ranks", headers={"x-api-key": "s3cret"})
        assert response.status_code == 200
        assert response.json()["created"] is True
        assert response.json()["total_users"] == 1

        repeat = client.post("/api/v1/leaderboard/update-ranks", headers={"x-api-key": "s3cret"})
        assert repeat.json()["created"] is False

        status = client.get("/api/v1/leaderboard/update-ranks").json()
        assert status["last_snapshot_date"] == "2024-01-10"
        assert status["new"] == 1

    def test_rank_trigger_is_open_without_a_configured_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", None)
        assert client.post("/api/v1/leaderboard/update-ranks").status_code == 200


class TestMyProgressEndpoints:
    def test_stats_and_achievements(self, client, auth_state, make_user):
        login(auth_state, make_user())
        client.post("/api/v1/progress/update", json=progress_payload(content_type="question", score=50))

        stats = client.get("/api/v1/users/me/stats").json()
        assert stats["stats"]["total_quizzes_completed"] == 1
        assert stats["stats"]["average_score"] == 50
        assert stats["stats"]["current_streak"] == 1
        assert stats["stats"]["study_days"] == 1
        assert stats["level_progress"]["total_xp"] == 3 + 50
        assert stats["achievements_unlocked"] == 1
        assert stats["achievements_total"] == len(ACHIEVEMENTS)

        unlocked = client.get("/api/v1/users/me/achievements").json()
        assert [a["id"] for a in unlocked] == ["first_steps"]
        everything = client.get("/api/v1/users/me/achievements", params={"include_locked": True}).json()
        assert len(everything) == len(ACHIEVEMENTS)
        assert sum(1 for a in everything if a["unlocked_at"] is None) == len(ACHIEVEMENTS) - 1

    def test_progress_listing_and_rank_history(self, client, auth_state, make_user, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", None)
        login(auth_state, make_user())
        client.post("/api/v1/progress/update", json=progress_payload())
        client.post("/api/v1/leaderboard/update-ranks")

        progress = client.get("/api/v1/users/me/progress", params={"content_type": "media"}).json()
        assert len(progress) == 1
        history = client.get("/api/v1/users/me/rank-history").json()
        assert history == [{"date": "2024-01-10", "rank": 1, "total_xp": 10}]


class TestAuthEndpoints:
    def test_register_then_me(self, client, auth_state, monkeypatch):
        token = TokenData(firebase_uid="uid-ada", email="ada@example.com", name="Ada Lovelace")
        monkeypatch.setattr(auth_routes, "verify_firebase_id_token", lambda id_token: token)

        response = client.post("/api/v1/auth/register", json={"firebase_id_token": "token"})
        assert response.status_code == 201
        user = response.json()["user"]
        assert (user["name"], user["total_xp"], user["level"], user["role"]) == ("Ada Lovelace", 0, 1, "student")

        duplicate = client.post("/api/v1/auth/register", json={"firebase_id_token": "token"})
        assert duplicate.status_code == 409

    def test_me(self, client, auth_state, make_user):
        me = login(auth_state, make_user(name="Grace Hopper"))
        response = client.get("/api/v1/auth/me")
        assert response.status_code == 200
        assert response.json()["id"] == me.id
