from studyquest.crud import user_progress_crud
from studyquest.models import ProgressRecord
from studyquest.models.enums import ContentType, Difficulty
from studyquest.services import completion_bonus_service
from studyquest.services.completion_bonus_service import check_completion_bonus, is_group_complete


def complete_items(db, user, content_type, item_ids, topic_id, clock, section_id=None, score=100):
    """Writes completed records directly, as if each item had been finished earlier."""
    for item_id in item_ids:
        record = user_progress_crud.ensure_progress_record(db, user.id, item_id, content_type, topic_id=topic_id, section_id=section_id)
        user_progress_crud.claim_first_completion(db, record.id, clock.now(), clock.today())
        user_progress_crud.record_attempt(db, record.id, completed=True, score=score, time_spent=0, xp_earned=0, accessed_at=clock.now())
    db.commit()


def test_empty_group_is_never_complete(db, make_user):
    user = make_user()
    assert not is_group_complete(db, user.id, ContentType.FLASHCARD, [])


def test_partial_group_is_not_complete(db, make_user, make_catalog, clock):
    user = make_user()
    catalog = make_catalog(flashcards=3)
    complete_items(db, user, ContentType.FLASHCARD, catalog["flashcard_ids"][:2], catalog["topic_id"], clock)
    assert not is_group_complete(db, user.id, ContentType.FLASHCARD, catalog["flashcard_ids"])


def test_started_but_unfinished_items_do_not_count(db, make_user, make_catalog, clock):
    user = make_user()
    catalog = make_catalog(media=2)
    complete_items(db, user, ContentType.MEDIA, catalog["media_ids"][:1], catalog["topic_id"], clock)
    user_progress_crud.ensure_progress_record(db, user.id, catalog["media_ids"][1], ContentType.MEDIA)
    assert not is_group_complete(db, user.id, ContentType.MEDIA, catalog["media_ids"])


def test_interleaved_completions_pay_the_bonus_exactly_once(db, make_user, make_catalog, clock):
    """
    Two requests finish the last two flashcards at the same time. Both see the
    topic complete when they check, but only the first sentinel insert lands.
    """
    user = make_user()
    catalog = make_catalog(flashcards=5)
    complete_items(db, user, ContentType.FLASHCARD, catalog["flashcard_ids"], catalog["topic_id"], clock)

    assert is_group_complete(db, user.id, ContentType.FLASHCARD, catalog["flashcard_ids"])
    args = (db, user.id, ContentType.FLASHCARD, catalog["topic_id"], catalog["subject_id"], None,
            Difficulty.BEGINNER, clock.now(), clock.today())
    first = check_completion_bonus(*args)
    second = check_completion_bonus(*args)
    db.commit()

    assert first is not None and first.xp_amount == 30
    assert second is None
    sentinels = db.query(ProgressRecord).filter(
        ProgressRecord.user_id == user.id,
        ProgressRecord.is_bonus_record.is_(True),
    ).all()
    assert [s.content_id for s in sentinels] == [completion_bonus_service.topic_sentinel_id(ContentType.FLASHCARD, catalog["topic_id"])]


def test_sentinel_insert_is_the_guard(db, make_user, clock):
    user = make_user()
    kwargs = dict(
        user_id=user.id,
        content_id="media-topic-abc",
        content_type=ContentType.MEDIA,
        completed_at=clock.now(),
        completed_on=clock.today(),
        xp_amount=40,
    )
    assert user_progress_crud.create_bonus_record(db, **kwargs)
    assert not user_progress_crud.create_bonus_record(db, **kwargs)


def test_bonus_records_are_not_counted_as_items(db, make_user, make_catalog, clock):
    user = make_user()
    catalog = make_catalog(flashcards=2)
    user_progress_crud.create_bonus_record(
        db, user.id, catalog["flashcard_ids"][0], ContentType.FLASHCARD, clock.now(), clock.today(), 0,
    )
    assert user_progress_crud.count_completed(db, user.id, ContentType.FLASHCARD, catalog["flashcard_ids"]) == 0


def test_question_without_section_gets_no_bonus(db, make_user, make_catalog, clock):
    user = make_user()
    catalog = make_catalog(questions=1)
    complete_items(db, user, ContentType.QUESTION, catalog["question_ids"], catalog["topic_id"], clock)
    assert check_completion_bonus(
        db, user.id, ContentType.QUESTION, catalog["topic_id"], catalog["subject_id"], None,
        Difficulty.BEGINNER, clock.now(), clock.today(),
    ) is None
