from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from petal_economy.db.models.base import Base, BigIntPK, JSONDocument, UTCDateTime

TRANSACTION_KINDS = (
    "PROMO_ACTIVATION",
    "WHEEL_WIN",
    "REFERRAL_BONUS",
    "SOCIAL_ACTIVITY",
    "REWARD_EXCHANGE",
    "ADMIN_ADJUSTMENT",
)


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint(
            "kind IN ('PROMO_ACTIVATION','WHEEL_WIN','REFERRAL_BONUS',"
            "'SOCIAL_ACTIVITY','REWARD_EXCHANGE','ADMIN_ADJUSTMENT')",
            name="ck_transactions_kind",
        ),
        Index("idx_transactions_user_created", "user_id", "created_at"),
        Index("idx_transactions_user_kind_created", "user_id", "kind", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    metadata_: Mapped[dict[str, object]] = mapped_column(
        "metadata",
        JSONDocument,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
