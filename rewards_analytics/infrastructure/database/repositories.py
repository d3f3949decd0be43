"""Data access layer for ad-hoc expenses, alerts, alert settings and forecast variables"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy.orm import Session
from rewards_analytics.infrastructure.database.models import (
    AdhocExpenseRecord,
    AlertSettingsRecord,
    AnalyticsAlertRecord,
    ForecastVariablesRecord,
)
from rewards_analytics.domain.adhoc import apply_patch, validate_adhoc_expense
from rewards_analytics.domain.models import (
    AdhocExpense,
    AlertSettings,
    AlertThresholds,
    AnalyticsAlert,
    ManualAdjustments,
)

logger = logging.getLogger(__name__)


def _to_expense(record: AdhocExpenseRecord) -> AdhocExpense:
    return AdhocExpense(
        id=record.id,
        title=record.title,
        amount=Decimal(record.amount).quantize(Decimal("0.01")),
        date=record.date,
        category=record.category,
        is_recurring=record.is_recurring,
        frequency=record.frequency,
        end_date=record.end_date,
        description=record.description,
    )


def _to_alert(record: AnalyticsAlertRecord) -> AnalyticsAlert:
    return AnalyticsAlert(
        id=record.id,
        type=record.type,
        severity=record.severity,
        title=record.title,
        message=record.message,
        date=record.date,
        scope=record.scope,
        is_read=record.is_read,
        action_required=record.action_required,
    )


class AdhocExpenseRepository:
    """Repository for planned expenses; writes are last-write-wins"""

    def __init__(self, db: Session):
        self.db = db

    def _get(self, user_id: str, expense_id: str) -> Optional[AdhocExpenseRecord]:
        return (
            self.db.query(AdhocExpenseRecord)
            .filter(AdhocExpenseRecord.id == expense_id, AdhocExpenseRecord.user_id == user_id)
            .first()
        )

    def list_for_user(self, user_id: str) -> List[AdhocExpense]:
        """All planned expenses for a user, by date"""
        records = (
            self.db.query(AdhocExpenseRecord)
            .filter(AdhocExpenseRecord.user_id == user_id)
            .order_by(AdhocExpenseRecord.date.asc())
            .all()
        )
        return [_to_expense(r) for r in records]

    def get(self, user_id: str, expense_id: str) -> Optional[AdhocExpense]:
        record = self._get(user_id, expense_id)
        return _to_expense(record) if record else None

    def create(self, user_id: str, data: Dict[str, Any]) -> AdhocExpense:
        """
        Validate and persist a new expense.

        Raises:
            ValidationError: malformed input
        """
        expense = validate_adhoc_expense({k: v for k, v in data.items() if k != "id"})
        record = AdhocExpenseRecord(
            user_id=user_id,
            title=expense.title,
            amount=expense.amount,
            date=expense.date,
            category=expense.category,
            is_recurring=expense.is_recurring,
            frequency=expense.frequency,
            end_date=expense.end_date,
            description=expense.description,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        logger.info("adhoc_expense_changed", extra={"user_id": user_id, "expense_id": record.id, "action": "create"})
        return _to_expense(record)

    def update(self, user_id: str, expense_id: str, patch: Dict[str, Any]) -> Optional[AdhocExpense]:
        """
        Apply a partial update; returns None when the expense does not exist.

        Raises:
            ValidationError: merged result is invalid
        """
        record = self._get(user_id, expense_id)
        if record is None:
            return None
        expense = apply_patch(_to_expense(record), patch)
        record.title = expense.title
        record.amount = expense.amount
        record.date = expense.date
        record.category = expense.category
        record.is_recurring = expense.is_recurring
        record.frequency = expense.frequency
        record.end_date = expense.end_date
        record.description = expense.description
        self.db.flush()
        logger.info("adhoc_expense_changed", extra={"user_id": user_id, "expense_id": expense_id, "action": "update"})
        return _to_expense(record)

    def delete(self, user_id: str, expense_id: str) -> bool:
        record = self._get(user_id, expense_id)
        if record is None:
            return False
        self.db.delete(record)
        self.db.flush()
        logger.info("adhoc_expense_changed", extra={"user_id": user_id, "expense_id": expense_id, "action": "delete"})
        return True


class AlertRepository:
    """Repository for alert state; dismissal is permanent per alert id"""

    def __init__(self, db: Session):
        self.db = db

    def save_new(self, user_id: str, alerts: Sequence[AnalyticsAlert]) -> List[AnalyticsAlert]:
        """Insert alerts whose ids have never been stored (including dismissed ones)"""
        if not alerts:
            return []
        ids = [a.id for a in alerts]
        known = {
            row.id
            for row in self.db.query(AnalyticsAlertRecord.id).filter(AnalyticsAlertRecord.id.in_(ids)).all()
        }
        created = []
        for alert in alerts:
            if alert.id in known:
                continue
            self.db.add(
                AnalyticsAlertRecord(
                    id=alert.id,
                    user_id=user_id,
                    type=alert.type,
                    severity=alert.severity,
                    scope=alert.scope,
                    title=alert.title,
                    message=alert.message,
                    date=alert.date,
                    is_read=alert.is_read,
                    action_required=alert.action_required,
                )
            )
            known.add(alert.id)
            created.append(alert)
        self.db.flush()
        return created

    def list_active(self, user_id: str, limit: int = 50) -> List[AnalyticsAlert]:
        """Non-dismissed alerts, newest first"""
        records = (
            self.db.query(AnalyticsAlertRecord)
            .filter(AnalyticsAlertRecord.user_id == user_id, AnalyticsAlertRecord.dismissed.is_(False))
            .order_by(AnalyticsAlertRecord.date.desc(), AnalyticsAlertRecord.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_alert(r) for r in records]

    def _active(self, user_id: str, alert_id: str) -> Optional[AnalyticsAlertRecord]:
        return (
            self.db.query(AnalyticsAlertRecord)
            .filter(
                AnalyticsAlertRecord.id == alert_id,
                AnalyticsAlertRecord.user_id == user_id,
                AnalyticsAlertRecord.dismissed.is_(False),
            )
            .first()
        )

    def mark_read(self, user_id: str, alert_id: str) -> bool:
        record = self._active(user_id, alert_id)
        if record is None:
            return False
        record.is_read = True
        self.db.flush()
        return True

    def dismiss(self, user_id: str, alert_id: str) -> bool:
        record = self._active(user_id, alert_id)
        if record is None:
            return False
        record.dismissed = True
        self.db.flush()
        return True


class ForecastVariablesRepository:
    """Repository for stored manual forecast adjustments"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[ManualAdjustments]:
        record = self.db.get(ForecastVariablesRecord, user_id)
        if record is None:
            return None
        return ManualAdjustments(
            income_multiplier=Decimal(record.income_multiplier),
            expense_multiplier=Decimal(record.expense_multiplier),
            seasonal_adjustment=Decimal(record.seasonal_adjustment),
        )

    def replace(self, user_id: str, adjustments: ManualAdjustments) -> ManualAdjustments:
        """Overwrite any previous adjustments; values never stack"""
        record = self.db.get(ForecastVariablesRecord, user_id)
        if record is None:
            record = ForecastVariablesRecord(user_id=user_id)
            self.db.add(record)
        record.income_multiplier = adjustments.income_multiplier
        record.expense_multiplier = adjustments.expense_multiplier
        record.seasonal_adjustment = adjustments.seasonal_adjustment
        self.db.flush()
        return adjustments


class AlertSettingsRepository:
    """Repository for per-user alert settings"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[AlertSettings]:
        record = self.db.get(AlertSettingsRecord, user_id)
        if record is None:
            return None
        return AlertSettings(
            thresholds=AlertThresholds(
                spending_pattern_percent=Decimal(record.spending_pattern_percent),
                budget_overrun_percent=Decimal(record.budget_overrun_percent),
                large_expense_amount=Decimal(record.large_expense_amount),
                forecast_deviation_percent=Decimal(record.forecast_deviation_percent),
            ),
            enable_email_alerts=record.enable_email_alerts,
            enable_push_alerts=record.enable_push_alerts,
        )

    def replace(self, user_id: str, alert_settings: AlertSettings) -> AlertSettings:
        """Overwrite the user's settings as a whole"""
        record = self.db.get(AlertSettingsRecord, user_id)
        if record is None:
            record = AlertSettingsRecord(user_id=user_id)
            self.db.add(record)
        thresholds = alert_settings.thresholds
        record.spending_pattern_percent = thresholds.spending_pattern_percent
        record.budget_overrun_percent = thresholds.budget_overrun_percent
        record.large_expense_amount = thresholds.large_expense_amount
        record.forecast_deviation_percent = thresholds.forecast_deviation_percent
        record.enable_email_alerts = alert_settings.enable_email_alerts
        record.enable_push_alerts = alert_settings.enable_push_alerts
        self.db.flush()
        logger.info("alert_settings_changed", extra={"user_id": user_id})
        return alert_settings
