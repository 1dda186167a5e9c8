from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BOOLEAN, CheckConstraint, ForeignKey, Index, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from petal_economy.db.models.base import Base, BigIntPK, UTCDateTime


class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint("inviter_id <> invitee_id", name="ck_referrals_no_self_referral"),
        CheckConstraint(
            "bonus_paid = false OR first_order_confirmed_at IS NOT NULL",
            name="ck_referrals_bonus_requires_confirmation",
        ),
        Index("idx_referrals_inviter_created", "inviter_id", "created_at"),
        Index("idx_referrals_inviter_confirmed", "inviter_id", "first_order_confirmed_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    inviter_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    invitee_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    first_order_confirmed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    first_order_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    bonus_paid: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
