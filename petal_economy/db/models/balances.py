from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Integer, SmallInteger, String, text
from sqlalchemy.orm import Mapped, mapped_column

from petal_economy.db.models.base import Base, UTCDateTime


class Balance(Base):
    __tablename__ = "balances"
    __table_args__ = (
        CheckConstraint("petals >= 0", name="ck_balances_petals_non_negative"),
        CheckConstraint("spin_credits IN (0, 1)", name="ck_balances_spin_credits_range"),
    )

    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), primary_key=True)
    petals: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    spin_credits: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default=text("0"))
    last_spin_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
