# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Collaborator interfaces consumed by the engines.

The engines never talk to a database or mail server directly. They depend
on two narrow, synchronous gateways: persistence (strongly consistent reads
and writes against a relational store) and notification dispatch.
"""

from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from ..core.primitives import InvoiceStatusEnum, Model, MonthInt
from ..core.records import (
    InvoiceLine,
    MonthlyInvoice,
    Payment,
    PaymentAllocation,
    RentHistoryEntry,
    Tenant,
    Unit,
    VpiAdjustment,
)

AuditRecord = Union[VpiAdjustment, RentHistoryEntry]


class InvoiceFilter(Model):
    """Criteria for ``PersistenceGateway.list_invoices``. Unset fields do not filter."""

    scope_id: Optional[UUID] = None
    tenant_id: Optional[UUID] = None
    year: Optional[int] = None
    month: Optional[MonthInt] = None
    statuses: Optional[Tuple[InvoiceStatusEnum, ...]] = None
    due_before: Optional[datetime.date] = None

    def matches(self, invoice: MonthlyInvoice) -> bool:
        if self.tenant_id is not None and invoice.tenant_id != self.tenant_id:
            return False
        if self.year is not None and invoice.year != self.year:
            return False
        if self.month is not None and invoice.month != self.month:
            return False
        if self.statuses is not None and invoice.status not in self.statuses:
            return False
        if self.due_before is not None and invoice.due_date >= self.due_before:
            return False
        return True


class PersistenceGateway(ABC):
    """Persistence primitives the engines rely on."""

    @abstractmethod
    def list_active_tenants(self, scope_id: UUID) -> List[Tenant]:
        """Active, non-deleted tenants on units in the scope."""

    @abstractmethod
    def get_tenant(self, tenant_id: UUID) -> Tenant:
        """Raises RecordNotFoundError if missing."""

    @abstractmethod
    def get_unit(self, unit_id: UUID) -> Unit:
        """Raises RecordNotFoundError if missing."""

    @abstractmethod
    def get_invoice(self, invoice_id: UUID) -> MonthlyInvoice:
        """Raises RecordNotFoundError if missing."""

    @abstractmethod
    def list_invoices(self, invoice_filter: InvoiceFilter) -> List[MonthlyInvoice]:
        """Invoices matching the filter, oldest due date first."""

    @abstractmethod
    def upsert_invoices(self, invoices: Sequence[MonthlyInvoice]) -> List[MonthlyInvoice]:
        """
        Insert or replace invoices as one unit of work.

        Raises InvariantViolation if an invoice would duplicate another
        invoice's (tenant, year, month); nothing is written in that case.
        """

    @abstractmethod
    def update_invoice(self, invoice_id: UUID, patch: Dict[str, Any]) -> MonthlyInvoice:
        """Apply all fields of ``patch`` atomically and return the stored invoice."""

    @abstractmethod
    def list_payments_in_range(
        self, tenant_id: UUID, start: datetime.date, end: datetime.date
    ) -> List[Payment]:
        """Payments booked between ``start`` and ``end`` inclusive."""

    @abstractmethod
    def list_allocations(
        self, payment_id: Optional[UUID] = None, invoice_id: Optional[UUID] = None
    ) -> List[PaymentAllocation]:
        """Allocation ledger rows, optionally narrowed to one payment or invoice."""

    @abstractmethod
    def create_allocations(
        self, allocations: Sequence[PaymentAllocation]
    ) -> List[PaymentAllocation]:
        """Append rows to the allocation ledger."""

    @abstractmethod
    def create_audit_record(self, record: AuditRecord) -> AuditRecord:
        """Persist an immutable audit record."""

    @abstractmethod
    def create_invoice_lines(self, lines: Sequence[InvoiceLine]) -> List[InvoiceLine]:
        """Persist invoice disclosure lines."""

    @abstractmethod
    def update_tenant(self, tenant_id: UUID, patch: Dict[str, Any]) -> Tenant:
        """Apply all fields of ``patch`` atomically and return the stored tenant."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Unit of work: writes inside are committed together or not at all."""


class NotificationReceipt(Model):
    """Outcome of one notification dispatch."""

    ok: bool
    id: Optional[str] = None
    error: Optional[str] = None


class NotificationGateway(ABC):
    """Outbound notification dispatch (e-mail or similar)."""

    @abstractmethod
    def send_notification(self, to: str, subject: str, body: str) -> NotificationReceipt:
        """Send one message. May return ``ok=False`` or raise on failure."""
