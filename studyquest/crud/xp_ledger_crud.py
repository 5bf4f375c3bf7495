from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import List, Optional
import logging
from datetime import datetime

from studyquest.models.xp_ledger_model import XPLedgerEntry
from studyquest.models.enums import XPSource

logger = logging.getLogger(__name__)


def add_entry(
    db: Session,
    user_id: int,
    amount: int,
    source: XPSource,
    balance_after: int,
    created_at: datetime,
    reference: Optional[str] = None,
) -> XPLedgerEntry:
    entry = XPLedgerEntry(
        user_id=user_id,
        amount=amount,
        source=source,
        reference=reference,
        balance_after=balance_after,
        created_at=created_at,
    )
    db.add(entry)
    db.flush()
    return entry

def get_entries(db: Session, user_id: int, skip: int = 0, limit: int = 100) -> List[XPLedgerEntry]:
    return db.query(XPLedgerEntry).filter(
        XPLedgerEntry.user_id == user_id
    ).order_by(XPLedgerEntry.id.desc()).offset(skip).limit(limit).all()

def get_ledger_total(db: Session, user_id: int) -> int:
    return db.query(func.coalesce(func.sum(XPLedgerEntry.amount), 0)).filter(
        XPLedgerEntry.user_id == user_id
    ).scalar() or 0
