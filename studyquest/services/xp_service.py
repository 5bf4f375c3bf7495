from sqlalchemy.orm import Session
import logging
from dataclasses import dataclass
from typing import Optional

from studyquest.core.clock import Clock
from studyquest.core.exceptions import UserNotFoundError
from studyquest.crud import user_crud, xp_ledger_crud
from studyquest.models.enums import XPSource
from studyquest.services.leveling import level_for_xp

logger = logging.getLogger(__name__)


@dataclass
class XPCredit:
    amount: int
    total_xp: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


def award_xp(
    db: Session,
    user_id: int,
    amount: int,
    source: XPSource,
    clock: Clock,
    reference: Optional[str] = None,
) -> XPCredit:
    """
    The single path through which XP reaches a user: a relative increment of
    users.total_xp, the level re-derived from the new total, and a ledger row.
    Does not commit; the caller owns the transaction.
    """
    current = user_crud.get_xp_and_level(db, user_id)
    if current is None:
        raise UserNotFoundError(user_id)
    old_total, old_level = current

    if amount <= 0:
        return XPCredit(amount=0, total_xp=old_total, old_level=old_level, new_level=old_level)

    new_total = user_crud.add_xp(db, user_id, amount)
    if new_total is None:
        raise UserNotFoundError(user_id)

    new_level = level_for_xp(new_total)
    if new_level != old_level:
        user_crud.set_level(db, user_id, new_level)

    xp_ledger_crud.add_entry(
        db,
        user_id=user_id,
        amount=amount,
        source=source,
        balance_after=new_total,
        created_at=clock.now(),
        reference=reference,
    )
    logger.info(f"Credited {amount} XP ({source.value}, ref={reference}) to user {user_id}: total {new_total}, level {old_level} -> {new_level}")
    return XPCredit(amount=amount, total_xp=new_total, old_level=old_level, new_level=new_level)
