"""core_club_ledger_schema

Revision ID: 5d1e7c3a9b20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5d1e7c3a9b20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "clubs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("region", sa.Text(), nullable=True),
        sa.Column("mission", sa.Text(), nullable=True),
        sa.Column("union", sa.Text(), nullable=True),
        sa.Column("plan_tier", sa.String(16), nullable=False, server_default=sa.text("'TRIAL'")),
        sa.Column("subscription_status", sa.String(16), nullable=False, server_default=sa.text("'TRIAL'")),
        sa.Column("member_limit", sa.Integer(), nullable=False, server_default=sa.text("30")),
        sa.Column("next_billing_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("grace_period_days", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "plan_tier IN ('TRIAL','FREE','PLAN_P','PLAN_M','PLAN_G')",
            name="ck_clubs_plan_tier",
        ),
        sa.CheckConstraint(
            "subscription_status IN ('TRIAL','ACTIVE','OVERDUE','CANCELED')",
            name="ck_clubs_subscription_status",
        ),
        sa.CheckConstraint("member_limit >= 0", name="ck_clubs_member_limit_non_negative"),
        sa.CheckConstraint("grace_period_days >= 0", name="ck_clubs_grace_period_non_negative"),
    )
    op.create_index("idx_clubs_next_billing_date", "clubs", ["next_billing_date"])
    op.create_index("idx_clubs_name", "clubs", ["name"])

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(16), nullable=False, server_default=sa.text("'PATHFINDER'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "role IN ('OWNER','ADMIN','DIRECTOR','SECRETARY','TREASURER','COUNSELOR',"
            "'INSTRUCTOR','PATHFINDER','PARENT','REGIONAL','MASTER')",
            name="ck_users_role",
        ),
        sa.CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        sa.ForeignKeyConstraint(["club_id"], ["clubs.id"]),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("idx_users_club_role", "users", ["club_id", "role"])
    op.create_index("idx_users_created_at", "users", ["created_at"])

    op.create_table(
        "products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("club_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default=sa.text("-1")),
        sa.Column("category", sa.String(8), nullable=False, server_default=sa.text("'REAL'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("price > 0", name="ck_products_price_positive"),
        sa.CheckConstraint("stock >= -1", name="ck_products_stock_range"),
        sa.CheckConstraint("category IN ('REAL','VIRTUAL')", name="ck_products_category"),
        sa.ForeignKeyConstraint(["club_id"], ["clubs.id"]),
    )
    op.create_index("idx_products_club_price", "products", ["club_id", "price"])

    op.create_table(
        "purchases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("product_name", sa.String(256), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("cost > 0", name="ck_purchases_cost_positive"),
        sa.CheckConstraint("status IN ('PENDING','APPLIED')", name="ck_purchases_status"),
        sa.CheckConstraint(
            "(status = 'APPLIED') = (applied_at IS NOT NULL)",
            name="ck_purchases_applied_at_matches_status",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_purchases_user_created", "purchases", ["user_id", "created_at"])
    op.create_index("idx_purchases_product", "purchases", ["product_id"])

    op.create_table(
        "points_history",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("purchase_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount <> 0", name="ck_points_history_amount_non_zero"),
        sa.CheckConstraint(
            "source IN ('PURCHASE','MANUAL','ACTIVITY','ATTENDANCE','REQUIREMENT')",
            name="ck_points_history_source",
        ),
        sa.CheckConstraint("balance_after >= 0", name="ck_points_history_balance_non_negative"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["purchase_id"], ["purchases.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_points_history_user_created", "points_history", ["user_id", "created_at"])
    op.create_index("idx_points_history_purchase", "points_history", ["purchase_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("severity", sa.String(8), nullable=False, server_default=sa.text("'INFO'")),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "severity IN ('INFO','SUCCESS','WARNING','ERROR')",
            name="ck_notifications_severity",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index(
        "idx_notifications_user_unread",
        "notifications",
        ["user_id"],
        postgresql_where=sa.text("is_read = false"),
    )


def downgrade() -> None:
    op.drop_index("idx_notifications_user_unread", table_name="notifications")
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("idx_points_history_purchase", table_name="points_history")
    op.drop_index("idx_points_history_user_created", table_name="points_history")
    op.drop_table("points_history")

    op.drop_index("idx_purchases_product", table_name="purchases")
    op.drop_index("idx_purchases_user_created", table_name="purchases")
    op.drop_table("purchases")

    op.drop_index("idx_products_club_price", table_name="products")
    op.drop_table("products")

    op.drop_index("idx_users_created_at", table_name="users")
    op.drop_index("idx_users_club_role", table_name="users")
    op.drop_table("users")

    op.drop_index("idx_clubs_name", table_name="clubs")
    op.drop_index("idx_clubs_next_billing_date", table_name="clubs")
    op.drop_table("clubs")
