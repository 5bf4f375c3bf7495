from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, Enum as SAEnum
from sqlalchemy.orm import relationship

from studyquest.core.database import Base
from studyquest.models.enums import XPSource

class XPLedgerEntry(Base):
    """
    One row per XP credit. users.total_xp is maintained incrementally and must
    always equal the sum of a user's ledger amounts.
    """
    __tablename__ = "xp_ledger"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    source = Column(SAEnum(XPSource, name="xp_source_enum", native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    reference = Column(String(128), nullable=True) # content id, sentinel key or achievement id
    balance_after = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False)

    user = relationship("User", back_populates="xp_ledger_entries")

    def __repr__(self):
        return f"<XPLedgerEntry(user_id={self.user_id}, amount={self.amount}, source={self.source})>"
