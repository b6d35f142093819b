from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class PointsHistoryEntry(Base):
    __tablename__ = "points_history"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_points_history_amount_non_zero"),
        CheckConstraint(
            "source IN ('PURCHASE','MANUAL','ACTIVITY','ATTENDANCE','REQUIREMENT')",
            name="ck_points_history_source",
        ),
        CheckConstraint("balance_after >= 0", name="ck_points_history_balance_non_negative"),
        Index("idx_points_history_user_created", "user_id", "created_at"),
        Index("idx_points_history_purchase", "purchase_id"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("purchases.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
