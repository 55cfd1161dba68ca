"""
SQLAlchemy ORM models (tenant store)
"""
from decimal import Decimal
from datetime import date as date_type
from sqlalchemy import String, DateTime, Integer, SmallInteger, Text, TIMESTAMP, Date, func, Boolean, Numeric, Index, true, false
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.db.session import Base


class User(Base):
    """
    User (tenant). Everything else hangs off user_id.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # NULL or 0 = the user has not set a monthly income
    income: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class RecurringExpenseModel(Base):
    """
    Recurring expense definition: template materialised into expenses by the jobs.

    Never deleted by the jobs; deactivated (active=False) once past end_date.
    """
    __tablename__ = "recurring_expenses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default="0")
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    day_of_month: Mapped[int] = mapped_column(SmallInteger, nullable=False)  # 1..31
    frequency: Mapped[str | None] = mapped_column(String(20), nullable=True, server_default="monthly")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())
    end_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_recurring_expenses_user_active_day", "user_id", "active", "day_of_month"),
    )


class ExpenseModel(Base):
    """
    Ledger expense. Rows created by the jobs are never updated afterwards.
    """
    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(100), nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    # Weak reference, lookup only (no FK: the definition may be deleted by the user)
    recurring_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_expenses_user_recurring_date", "user_id", "recurring_id", "date"),
    )


class PushSubscription(Base):
    """Web Push subscription for a user device. Higher id = registered more recently."""
    __tablename__ = "push_subscriptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    # Not unique: the same device may have been registered more than once
    endpoint: Mapped[str] = mapped_column(Text, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class UserNotificationSettings(Base):
    """
    Per-user reminder preferences and dedup markers.

    Markers (weekly_last_sent_*, income_last_sent_month) are written by the
    reminder jobs only, after a successful delivery.
    """
    __tablename__ = "user_notification_settings"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    push_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=true())

    # Daily reminder
    daily_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    daily_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Weekly reminder (0 = Sunday .. 6 = Saturday, service time zone)
    weekly_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    weekly_day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="0")
    weekly_hour: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="21")
    weekly_minute: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="0")
    weekly_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    weekly_last_sent_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    weekly_last_sent_hour: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)
    weekly_last_sent_minute: Mapped[int | None] = mapped_column(SmallInteger, nullable=True)

    # Monthly income reminder
    income_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=false())
    income_day_of_month: Mapped[int] = mapped_column(SmallInteger, nullable=False, server_default="28")
    income_last_sent_month: Mapped[str | None] = mapped_column(String(7), nullable=True)  # "YYYY-MM"

    updated_at: Mapped[DateTime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
