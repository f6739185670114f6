"""Create users, events, purchases, token_purchases and orders

Revision ID: 20261019_fightpass_purchases
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_fightpass_purchases"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("token_balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("token_balance >= 0", name="ck_users_token_balance_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_email", ["email"], unique=True)

    op.create_table(
        "events",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("subtitle", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.String(500), nullable=True),
        sa.Column("is_live", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("viewers", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("stream_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.CheckConstraint("price >= 0", name="ck_events_price_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("events", schema=None) as batch_op:
        batch_op.create_index("ix_events_is_live", ["is_live"], unique=False)

    op.create_table(
        "purchases",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("event_id", sa.String(64), nullable=False),
        sa.Column("access_token", sa.String(128), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("amount_paid", sa.Integer(), nullable=False),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("digital_signature", sa.String(128), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("receipt_number", name="uq_purchases_receipt_number"),
    )
    with op.batch_alter_table("purchases", schema=None) as batch_op:
        batch_op.create_index("ix_purchases_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_purchases_event_id", ["event_id"], unique=False)
        batch_op.create_index("ix_purchases_user_event_expires", ["user_id", "event_id", "expires_at"], unique=False)

    op.create_table(
        "token_purchases",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("package_id", sa.String(32), nullable=False),
        sa.Column("tokens_added", sa.Integer(), nullable=False),
        sa.Column("bonus_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("amount_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("square_payment_id", sa.String(128), nullable=False),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("receipt_url", sa.String(500), nullable=True),
        sa.Column("digital_signature", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("receipt_number", name="uq_token_purchases_receipt_number"),
    )
    with op.batch_alter_table("token_purchases", schema=None) as batch_op:
        batch_op.create_index("ix_token_purchases_user_id", ["user_id"], unique=False)

    op.create_table(
        "orders",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("items", sa.Text(), nullable=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("square_payment_id", sa.String(128), nullable=True),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("receipt_url", sa.String(500), nullable=True),
        sa.Column("digital_signature", sa.String(128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_orders_receipt_number", ["receipt_number"], unique=False)
        batch_op.create_index("ix_orders_user_created", ["user_id", "created_at"], unique=False)


def downgrade():
    op.drop_table("orders")
    op.drop_table("token_purchases")
    op.drop_table("purchases")
    op.drop_table("events")
    op.drop_table("users")
