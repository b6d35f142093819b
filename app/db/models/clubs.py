from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Club(Base):
    __tablename__ = "clubs"
    __table_args__ = (
        CheckConstraint(
            "plan_tier IN ('TRIAL','FREE','PLAN_P','PLAN_M','PLAN_G')",
            name="ck_clubs_plan_tier",
        ),
        CheckConstraint(
            "subscription_status IN ('TRIAL','ACTIVE','OVERDUE','CANCELED')",
            name="ck_clubs_subscription_status",
        ),
        CheckConstraint("member_limit >= 0", name="ck_clubs_member_limit_non_negative"),
        CheckConstraint("grace_period_days >= 0", name="ck_clubs_grace_period_non_negative"),
        Index("idx_clubs_next_billing_date", "next_billing_date"),
        Index("idx_clubs_name", "name"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    region: Mapped[str | None] = mapped_column(Text, nullable=True)
    mission: Mapped[str | None] = mapped_column(Text, nullable=True)
    union: Mapped[str | None] = mapped_column(Text, nullable=True)
    plan_tier: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'TRIAL'"))
    subscription_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'TRIAL'"),
    )
    member_limit: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("30"))
    next_billing_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    grace_period_days: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
