from sqlalchemy.orm import Session
from sqlalchemy.dialects import postgresql, sqlite
import logging
from typing import Any, Dict, Sequence

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_if_absent(db: Session, model, values: Dict[str, Any], conflict_columns: Sequence[str]) -> bool:
    """
    Atomically inserts a row unless one already exists for `conflict_columns`
    (INSERT ... ON CONFLICT DO NOTHING). Returns True only for the caller whose
    insert actually created the row, which is what makes sentinel and
    achievement rows safe to use as exactly-once guards under concurrency.
    """
    dialect_name = db.get_bind().dialect.name
    insert_factory = _DIALECT_INSERTS.get(dialect_name)
    if insert_factory is None:
        raise NotImplementedError(f"insert_if_absent is not supported for dialect '{dialect_name}'")

    stmt = (
        insert_factory(model.__table__)
        .values(**values)
        .on_conflict_do_nothing(index_elements=list(conflict_columns))
    )
    result = db.execute(stmt)
    created = result.rowcount == 1
    logger.debug(f"insert_if_absent into {model.__tablename__} on {tuple(conflict_columns)}: created={created}")
    return created
