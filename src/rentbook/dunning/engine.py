# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Dunning escalation for overdue invoices.

Each invoice carries a dunning level (0 open, 1 reminder, 2 first notice,
3 final notice) that only ever increases. A check maps days overdue to the
highest satisfied level; an escalation happens only when that target is
above the current level, so repeated checks on the same day are no-ops.
Payment in full ends escalation but leaves the level as history.

Level and status are written together in one invoice update. Notification
dispatch is optional and best-effort: a failed notice is logged and
counted, never rolled back into the level change and never allowed to stop
the batch.
"""

from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import Field

from ..core.errors import BatchIssue, ExternalDependencyError, RentbookError
from ..core.primitives import (
    DunningLevel,
    EngineSettings,
    InvoiceStatusEnum,
    Model,
    round_money,
)
from ..core.records import MonthlyInvoice, Tenant
from ..gateway import InvoiceFilter, NotificationGateway, PersistenceGateway
from .notices import render_dunning_notice

logger = logging.getLogger(__name__)


class DunningAction(Model):
    """A proposed (or applied) escalation of one invoice."""

    invoice_id: UUID
    tenant_id: UUID
    tenant_name: str
    tenant_email: Optional[str] = None
    current_level: int
    new_level: int
    level_name: str
    days_overdue: int
    principal: float
    fee: float
    interest: float
    total_due: float


class DunningRunResult(Model):
    """Outcome of a dunning run."""

    processed: int = 0
    escalated: int = 0
    emails_sent: int = 0
    notification_failures: int = 0
    actions: List[DunningAction] = Field(default_factory=list)
    failed: List[BatchIssue] = Field(default_factory=list)


class DunningEngine:
    """
    Evaluates and escalates overdue invoices of a scope.

    Example:
        >>> engine = DunningEngine(gateway, notifier=mailer)
        >>> result = engine.process(scope_id, today=date(2025, 3, 20), send_emails=True)
        >>> result.escalated, result.emails_sent
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        notifier: Optional[NotificationGateway] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier
        self.settings = settings or EngineSettings()

    @property
    def levels(self) -> Tuple[DunningLevel, ...]:
        return self.settings.dunning.levels

    def calculate_interest(self, principal: float, days_overdue: int, annual_rate: float) -> float:
        """Statutory interest prorated by days overdue; zero inside the interest-free window."""
        dunning = self.settings.dunning
        if days_overdue <= dunning.interest_free_days or principal <= 0:
            return 0.0
        return round_money(principal * annual_rate * days_overdue / dunning.days_in_year)

    def evaluate(
        self,
        invoice: MonthlyInvoice,
        today: datetime.date,
        tenant: Optional[Tenant] = None,
    ) -> Optional[DunningAction]:
        """
        Escalation due for one invoice, or None. Pure; nothing is persisted.
        """
        if invoice.status == InvoiceStatusEnum.PAID:
            return None
        days_overdue = invoice.days_overdue(today)
        principal = invoice.outstanding
        if days_overdue <= 0 or principal <= 0:
            return None

        target = self.settings.dunning.level_for(days_overdue)
        if target.level <= invoice.dunning_level:
            return None

        interest = self.calculate_interest(principal, days_overdue, target.interest_rate)
        return DunningAction(
            invoice_id=invoice.id,
            tenant_id=invoice.tenant_id,
            tenant_name=tenant.display_name if tenant else str(invoice.tenant_id),
            tenant_email=tenant.email if tenant else None,
            current_level=invoice.dunning_level,
            new_level=target.level,
            level_name=target.name,
            days_overdue=days_overdue,
            principal=principal,
            fee=round_money(target.fee),
            interest=interest,
            total_due=round_money(principal + target.fee + interest),
        )

    def _collect(
        self, scope_id: UUID, today: datetime.date
    ) -> Tuple[List[DunningAction], List[BatchIssue]]:
        invoices = self.gateway.list_invoices(
            InvoiceFilter(
                scope_id=scope_id,
                statuses=InvoiceStatusEnum.outstanding(),
                due_before=today,
            )
        )
        tenants: Dict[UUID, Tenant] = {}
        actions: List[DunningAction] = []
        failed: List[BatchIssue] = []
        for invoice in invoices:
            try:
                if invoice.tenant_id not in tenants:
                    tenants[invoice.tenant_id] = self.gateway.get_tenant(invoice.tenant_id)
                action = self.evaluate(invoice, today, tenants[invoice.tenant_id])
            except RentbookError as e:
                logger.warning(f"Skipping invoice {invoice.id}: {e.message}")
                failed.append(BatchIssue.from_error(e, record_id=invoice.id))
                continue
            if action is not None:
                actions.append(action)
        return actions, failed

    def check(self, scope_id: UUID, today: Optional[datetime.date] = None) -> List[DunningAction]:
        """Escalations that are due in the scope. Read-only."""
        actions, _ = self._collect(scope_id, today or datetime.date.today())
        return actions

    def process(
        self,
        scope_id: UUID,
        today: Optional[datetime.date] = None,
        send_emails: bool = False,
    ) -> DunningRunResult:
        """
        Escalate every due invoice in the scope and optionally notify tenants.

        Returns:
            DunningRunResult; ``escalated`` counts persisted level changes,
            ``emails_sent`` successful notifications
        """
        today = today or datetime.date.today()
        actions, failed = self._collect(scope_id, today)

        applied: List[DunningAction] = []
        emails_sent = 0
        notification_failures = 0
        for action in actions:
            try:
                action = self._persist(action, today)
            except RentbookError as e:
                logger.error(f"Could not escalate invoice {action.invoice_id}: {e.message}")
                failed.append(BatchIssue.from_error(e, record_id=action.invoice_id))
                continue
            if action is None:
                continue
            applied.append(action)

            if not send_emails:
                continue
            if self.notifier is None or not action.tenant_email:
                logger.info(
                    f"No notification channel for tenant {action.tenant_id}; notice not sent"
                )
                continue
            if self._notify(action, today, failed):
                emails_sent += 1
            else:
                notification_failures += 1

        logger.info(
            f"Dunning run for scope {scope_id}: {len(applied)} escalated, "
            f"{emails_sent} notices sent, {notification_failures} notice failures"
        )
        return DunningRunResult(
            processed=len(actions),
            escalated=len(applied),
            emails_sent=emails_sent,
            notification_failures=notification_failures,
            actions=applied,
            failed=failed,
        )

    def _persist(self, action: DunningAction, today: datetime.date) -> Optional[DunningAction]:
        """
        Re-evaluate the stored invoice and write the escalation it still warrants.

        Returns None when the invoice was paid or escalated elsewhere since
        ``action`` was computed.
        """
        with self.gateway.transaction():
            current = self.evaluate(self.gateway.get_invoice(action.invoice_id), today)
            if current is None:
                logger.info(f"Invoice {action.invoice_id} no longer due for escalation; skipped")
                return None
            current = current.model_copy(
                update={"tenant_name": action.tenant_name, "tenant_email": action.tenant_email}
            )
            patch = {"dunning_level": current.new_level, "status": InvoiceStatusEnum.OVERDUE}
            if current.new_level == 1:
                patch["last_reminder_at"] = today
            else:
                patch["last_dunning_at"] = today
            self.gateway.update_invoice(current.invoice_id, patch)
        logger.debug(
            f"Invoice {current.invoice_id}: level {current.current_level} -> {current.new_level}"
        )
        return current

    def _notify(
        self, action: DunningAction, today: datetime.date, failed: List[BatchIssue]
    ) -> bool:
        level = self.settings.dunning.get_level(action.new_level)
        subject, body = render_dunning_notice(action, level, today, self.settings.dunning)
        try:
            receipt = self.notifier.send_notification(action.tenant_email, subject, body)
            if not receipt.ok:
                raise ExternalDependencyError(
                    receipt.error or "notification rejected", record_id=action.invoice_id
                )
        except Exception as e:
            logger.warning(f"Failed to send dunning notice to {action.tenant_email}: {e}")
            error = e if isinstance(e, ExternalDependencyError) else ExternalDependencyError(
                f"Notification to {action.tenant_email} failed: {e}",
                record_id=action.invoice_id,
            )
            failed.append(BatchIssue.from_error(error))
            return False
        return True
