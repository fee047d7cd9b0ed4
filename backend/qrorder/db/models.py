"""
Relational database models for the ordering backend.

These models define the schema used by SQLAlchemyStorage and by Alembic
for migration generation. Storage reads and writes them through
SQLAlchemy Core, so rows surface as plain dictionaries.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RestaurantTable(Base):
    """Physical table that diners sit at."""

    __tablename__ = "restaurant_tables"

    id = Column(String(36), primary_key=True)
    table_number = Column(Integer, nullable=False)
    section = Column(String(100), nullable=True)
    capacity = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="Available")  # Available / Occupied
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("table_number", name="uq_restaurant_tables_number"),
    )

    def __repr__(self):
        return f"<RestaurantTable(number={self.table_number}, status={self.status})>"


class TableSession(Base):
    """Open/occupied period of one table, from seating to checkout."""

    __tablename__ = "table_sessions"

    id = Column(String(36), primary_key=True)
    table_number = Column(Integer, nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    started_at = Column(DateTime, default=_utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    # At most one active session per table
    __table_args__ = (
        Index(
            "uq_table_sessions_active_table",
            "table_number",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("idx_table_sessions_started", "started_at"),
    )

    def __repr__(self):
        return f"<TableSession(id={self.id}, table={self.table_number}, active={self.is_active})>"


class Order(Base):
    """One cart submission tied to a session."""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(36), ForeignKey("table_sessions.id"), nullable=False)
    table_number = Column(Integer, nullable=False)
    order_items = Column(JSON, nullable=False, default=list)  # [{menu_item_id, name, price, quantity, instructions}]
    total_amount = Column(Float, nullable=False, default=0.0)
    special_instructions = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_orders_session", "session_id"),
        Index("idx_orders_table_status", "table_number", "status"),
        Index("idx_orders_created", "created_at"),
    )

    def __repr__(self):
        return f"<Order(id={self.id}, session={self.session_id}, status={self.status})>"


class MenuItem(Base):
    """Dish or drink on the menu."""

    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    allergens = Column(JSON, nullable=True)
    nutritional_info = Column(JSON, nullable=True)
    translations = Column(JSON, nullable=True)  # {"el": {"name": ..., "description": ...}}
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<MenuItem(id={self.id}, name={self.name}, price={self.price})>"


class Transaction(Base):
    """Payment record closing out a session."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(36), ForeignKey("table_sessions.id"), nullable=False, index=True)
    table_number = Column(Integer, nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    payment_method = Column(String(20), nullable=False)
    order_details = Column(JSON, nullable=False)  # snapshot of the session's orders
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Transaction(id={self.id}, table={self.table_number}, total={self.total_amount})>"


class User(Base):
    """Sign-in identity (email + password)."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    user_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"


class AdminUser(Base):
    """Admin membership plus staff profile details."""

    __tablename__ = "admin_users"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    email = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    company_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", name="uq_admin_users_user"),)

    def __repr__(self):
        return f"<AdminUser(user_id={self.user_id}, username={self.username})>"


class Cart(Base):
    """Diner cart persisted per session."""

    __tablename__ = "carts"

    id = Column(String(36), primary_key=True)
    session_id = Column(String(36), nullable=False)
    table_number = Column(Integer, nullable=True)
    items = Column(JSON, nullable=False, default=list)
    special_instructions = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("session_id", name="uq_carts_session"),)

    def __repr__(self):
        return f"<Cart(session={self.session_id}, lines={len(self.items or [])})>"
