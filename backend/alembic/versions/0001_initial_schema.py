"""Initial schema: tables, sessions, orders, menu, transactions, users, carts.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "restaurant_tables",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("section", sa.String(100), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("table_number", name="uq_restaurant_tables_number"),
    )

    op.create_table(
        "table_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_table_sessions_table_number", "table_sessions", ["table_number"])
    op.create_index("idx_table_sessions_started", "table_sessions", ["started_at"])
    op.create_index(
        "uq_table_sessions_active_table",
        "table_sessions",
        ["table_number"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("session_id", sa.String(36), sa.ForeignKey("table_sessions.id"), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("order_items", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_orders_session", "orders", ["session_id"])
    op.create_index("idx_orders_table_status", "orders", ["table_number", "status"])
    op.create_index("idx_orders_created", "orders", ["created_at"])

    op.create_table(
        "menu_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("allergens", sa.JSON(), nullable=True),
        sa.Column("nutritional_info", sa.JSON(), nullable=True),
        sa.Column("translations", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_menu_items_category", "menu_items", ["category"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("session_id", sa.String(36), sa.ForeignKey("table_sessions.id"), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("order_details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_transactions_session_id", "transactions", ["session_id"])
    op.create_index("ix_transactions_table_number", "transactions", ["table_number"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("user_metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", name="uq_admin_users_user"),
    )

    op.create_table(
        "carts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("session_id", sa.String(36), nullable=False),
        sa.Column("table_number", sa.Integer(), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("special_instructions", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("session_id", name="uq_carts_session"),
    )


def downgrade() -> None:
    op.drop_table("carts")
    op.drop_table("admin_users")
    op.drop_table("users")
    op.drop_index("ix_transactions_table_number", table_name="transactions")
    op.drop_index("ix_transactions_session_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_menu_items_category", table_name="menu_items")
    op.drop_table("menu_items")
    op.drop_index("idx_orders_created", table_name="orders")
    op.drop_index("idx_orders_table_status", table_name="orders")
    op.drop_index("idx_orders_session", table_name="orders")
    op.drop_table("orders")
    op.drop_index("uq_table_sessions_active_table", table_name="table_sessions")
    op.drop_index("idx_table_sessions_started", table_name="table_sessions")
    op.drop_index("ix_table_sessions_table_number", table_name="table_sessions")
    op.drop_table("table_sessions")
    op.drop_table("restaurant_tables")
