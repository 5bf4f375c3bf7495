from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Set
import logging

from studyquest.models.content_model import Subject, Topic, Question, Flashcard, Media
from studyquest.models.enums import ContentType

logger = logging.getLogger(__name__)

# Read-only access to the content catalog. Writes belong to the content-management service.

_TOPIC_CONTENT_MODELS = {
    ContentType.QUESTION: Question,
    ContentType.FLASHCARD: Flashcard,
    ContentType.MEDIA: Media,
}


def get_section_question_ids(db: Session, section_id: str) -> List[str]:
    logger.debug(f"Fetching question ids for section {section_id}")
    return [row[0] for row in db.query(Question.id).filter(Question.section_id == section_id).all()]

def get_topic_content_ids(db: Session, topic_id: str, content_type: ContentType) -> List[str]:
    """Ids of every item of `content_type` that belongs to the topic."""
    model = _TOPIC_CONTENT_MODELS.get(content_type)
    if model is None:
        return []
    logger.debug(f"Fetching {content_type.value} ids for topic {topic_id}")
    return [row[0] for row in db.query(model.id).filter(model.topic_id == topic_id).all()]

def get_question_section_id(db: Session, question_id: str) -> Optional[str]:
    """The catalog section of a question; None for unknown questions and questions outside any section."""
    row = db.query(Question.section_id).filter(Question.id == question_id).first()
    return row[0] if row else None

def get_catalog_structure(db: Session) -> Dict[str, Dict[str, Set[str]]]:
    """
    subject_id -> topic_id -> ids of every question, flashcard and media item in the topic.
    Topics without content are included with an empty set.
    """
    structure: Dict[str, Dict[str, Set[str]]] = {
        subject_id: {} for (subject_id,) in db.query(Subject.id).all()
    }
    topic_subject: Dict[str, str] = {}
    for topic_id, subject_id in db.query(Topic.id, Topic.subject_id).all():
        structure.setdefault(subject_id, {})[topic_id] = set()
        topic_subject[topic_id] = subject_id

    for model in _TOPIC_CONTENT_MODELS.values():
        for item_id, topic_id in db.query(model.id, model.topic_id).all():
            subject_id = topic_subject.get(topic_id)
            if subject_id is not None:
                structure[subject_id][topic_id].add(item_id)
    return structure
