"""SQLAlchemy ORM models for user-owned analytics state"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class AdhocExpenseRecord(Base):
    """User-planned expense"""

    __tablename__ = "adhoc_expense"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(Date, nullable=False)
    category = Column(Text, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    frequency = Column(Text, nullable=True)
    end_date = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class AnalyticsAlertRecord(Base):
    """Alert produced by an evaluation run; dismissed rows are kept as tombstones"""

    __tablename__ = "analytics_alert"

    id = Column(String(36), primary_key=True)
    user_id = Column(Text, nullable=False, index=True)
    type = Column(Text, nullable=False)
    severity = Column(Text, nullable=False)
    scope = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    action_required = Column(Boolean, nullable=False, default=False)
    dismissed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ForecastVariablesRecord(Base):
    """Stored manual forecast adjustments, one row per user"""

    __tablename__ = "forecast_variables"

    user_id = Column(Text, primary_key=True)
    income_multiplier = Column(Numeric(8, 4), nullable=False, default=1)
    expense_multiplier = Column(Numeric(8, 4), nullable=False, default=1)
    seasonal_adjustment = Column(Numeric(8, 4), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class AlertSettingsRecord(Base):
    """Per-user alert thresholds and delivery preferences, one row per user"""

    __tablename__ = "alert_settings"

    user_id = Column(Text, primary_key=True)
    spending_pattern_percent = Column(Numeric(8, 2), nullable=False)
    budget_overrun_percent = Column(Numeric(8, 2), nullable=False)
    large_expense_amount = Column(Numeric(12, 2), nullable=False)
    forecast_deviation_percent = Column(Numeric(8, 2), nullable=False)
    enable_email_alerts = Column(Boolean, nullable=False, default=False)
    enable_push_alerts = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
