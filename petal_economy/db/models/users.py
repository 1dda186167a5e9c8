from __future__ import annotations

from datetime import datetime

from sqlalchemy import BOOLEAN, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from petal_economy.db.models.base import Base, UTCDateTime


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_ref_parent", "ref_parent_id"),
        Index("idx_users_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    ref_parent_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("users.id"),
        nullable=True,
    )
    username: Mapped[str | None] = mapped_column(Text, nullable=True)
    first_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
