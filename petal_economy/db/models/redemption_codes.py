from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BOOLEAN,
    CHAR,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    SmallInteger,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from petal_economy.db.models.base import Base, JSONDocument, UTCDateTime


class RedemptionCode(Base):
    __tablename__ = "redemption_codes"
    __table_args__ = (
        CheckConstraint("code_type IN ('ORDER','SOCIAL','REWARD')", name="ck_redemption_codes_type"),
        CheckConstraint("spin_credit IN (0, 1)", name="ck_redemption_codes_spin_credit"),
        CheckConstraint(
            "(is_used = false AND used_at IS NULL) OR (is_used = true AND used_at IS NOT NULL)",
            name="ck_redemption_codes_used_consistency",
        ),
        Index("idx_redemption_codes_bound_user", "bound_user_id"),
        Index("idx_redemption_codes_type_created", "code_type", "created_at"),
        Index("idx_redemption_codes_expires_at", "expires_at"),
    )

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    code_type: Mapped[str] = mapped_column(String(16), nullable=False)
    petals_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    spin_credit: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default=text("0"))
    labels: Mapped[dict[str, object]] = mapped_column(JSONDocument, nullable=False, default=dict)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    single_use: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    bound_user_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id"),
        nullable=True,
    )
    is_used: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("false"))
    used_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    checksum: Mapped[str] = mapped_column(CHAR(2), nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
