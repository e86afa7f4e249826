# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
In-memory reference implementation of the persistence gateway.

Backs tests and small embedded deployments. Rows are validated into records
on the way in; invariants a relational schema would enforce (unique invoice
per tenant and period) are enforced here as well.
"""

from __future__ import annotations

import datetime
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Type, TypeVar, Union
from uuid import UUID

from pydantic import ValidationError

from ..core.errors import InvariantViolation, RecordNotFoundError, RecordValidationError
from ..core.primitives import Model
from ..core.records import (
    InvoiceLine,
    MonthlyInvoice,
    Payment,
    PaymentAllocation,
    Tenant,
    Unit,
)
from .base import AuditRecord, InvoiceFilter, PersistenceGateway

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Model)


def coerce_record(
    model_cls: Type[RecordT], row: Union[RecordT, Mapping[str, Any]], entity: str
) -> RecordT:
    """
    Validate a raw row into a record.

    Raises:
        RecordValidationError: If required fields are missing, values are
            malformed, or the row carries unknown fields
    """
    if isinstance(row, model_cls):
        return row
    try:
        return model_cls.model_validate(dict(row))
    except ValidationError as e:
        raise RecordValidationError.from_pydantic(
            entity, e, record_id=dict(row).get("id")
        ) from e


def apply_patch(record: RecordT, patch: Mapping[str, Any], entity: str) -> RecordT:
    """Return a re-validated copy of ``record`` with ``patch`` applied."""
    data = record.model_dump()
    data.update(patch)
    return coerce_record(type(record), data, entity)


class InMemoryGateway(PersistenceGateway):
    """
    Dictionary-backed persistence gateway.

    All public methods are serialized by a re-entrant lock; ``transaction()``
    holds the lock for its whole body and restores a snapshot if the body raises.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._units: Dict[UUID, Unit] = {}
        self._tenants: Dict[UUID, Tenant] = {}
        self._invoices: Dict[UUID, MonthlyInvoice] = {}
        self._payments: Dict[UUID, Payment] = {}
        self._lines: List[InvoiceLine] = []
        self._allocations: List[PaymentAllocation] = []
        self._audit: List[AuditRecord] = []

    # ==========================================================================
    # SEEDING
    # ==========================================================================

    def add_unit(self, row: Union[Unit, Mapping[str, Any]]) -> Unit:
        unit = coerce_record(Unit, row, "unit")
        with self._lock:
            self._units[unit.id] = unit
        return unit

    def add_tenant(self, row: Union[Tenant, Mapping[str, Any]]) -> Tenant:
        tenant = coerce_record(Tenant, row, "tenant")
        with self._lock:
            self._tenants[tenant.id] = tenant
        return tenant

    def add_payment(self, row: Union[Payment, Mapping[str, Any]]) -> Payment:
        payment = coerce_record(Payment, row, "payment")
        with self._lock:
            self._payments[payment.id] = payment
        return payment

    def remove_unit(self, unit_id: UUID) -> None:
        with self._lock:
            self._units.pop(unit_id, None)

    # ==========================================================================
    # READS
    # ==========================================================================

    def _scope_of(self, unit_id: Optional[UUID]) -> Optional[UUID]:
        unit = self._units.get(unit_id) if unit_id is not None else None
        return unit.scope_id if unit else None

    def list_active_tenants(self, scope_id: UUID) -> List[Tenant]:
        with self._lock:
            return [
                t
                for t in self._tenants.values()
                if t.is_active and self._scope_of(t.unit_id) == scope_id
            ]

    def get_tenant(self, tenant_id: UUID) -> Tenant:
        with self._lock:
            tenant = self._tenants.get(tenant_id)
        if tenant is None or tenant.deleted_at is not None:
            raise RecordNotFoundError(f"Tenant {tenant_id} not found", record_id=tenant_id)
        return tenant

    def get_unit(self, unit_id: UUID) -> Unit:
        with self._lock:
            unit = self._units.get(unit_id)
        if unit is None:
            raise RecordNotFoundError(f"Unit {unit_id} not found", record_id=unit_id)
        return unit

    def get_invoice(self, invoice_id: UUID) -> MonthlyInvoice:
        with self._lock:
            invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise RecordNotFoundError(f"Invoice {invoice_id} not found", record_id=invoice_id)
        return invoice

    def list_invoices(self, invoice_filter: InvoiceFilter) -> List[MonthlyInvoice]:
        with self._lock:
            selected = [inv for inv in self._invoices.values() if invoice_filter.matches(inv)]
            if invoice_filter.scope_id is not None:
                selected = [
                    inv
                    for inv in selected
                    if self._invoice_scope(inv) == invoice_filter.scope_id
                ]
        return sorted(selected, key=lambda inv: (inv.due_date, inv.year, inv.month, str(inv.id)))

    def _invoice_scope(self, invoice: MonthlyInvoice) -> Optional[UUID]:
        scope = self._scope_of(invoice.unit_id)
        if scope is None:
            tenant = self._tenants.get(invoice.tenant_id)
            scope = self._scope_of(tenant.unit_id) if tenant else None
        return scope

    def list_payments_in_range(
        self, tenant_id: UUID, start: datetime.date, end: datetime.date
    ) -> List[Payment]:
        with self._lock:
            selected = [
                p
                for p in self._payments.values()
                if p.tenant_id == tenant_id and start <= p.booking_date <= end
            ]
        return sorted(selected, key=lambda p: (p.booking_date, str(p.id)))

    def list_allocations(
        self, payment_id: Optional[UUID] = None, invoice_id: Optional[UUID] = None
    ) -> List[PaymentAllocation]:
        with self._lock:
            return [
                a
                for a in self._allocations
                if (payment_id is None or a.payment_id == payment_id)
                and (invoice_id is None or a.invoice_id == invoice_id)
            ]

    @property
    def audit_records(self) -> List[AuditRecord]:
        with self._lock:
            return list(self._audit)

    @property
    def invoice_lines(self) -> List[InvoiceLine]:
        with self._lock:
            return list(self._lines)

    # ==========================================================================
    # WRITES
    # ==========================================================================

    def upsert_invoices(self, invoices: Sequence[MonthlyInvoice]) -> List[MonthlyInvoice]:
        with self._lock:
            taken = {
                (inv.tenant_id, inv.year, inv.month): inv.id for inv in self._invoices.values()
            }
            for invoice in invoices:
                key = (invoice.tenant_id, invoice.year, invoice.month)
                owner = taken.get(key)
                if owner is not None and owner != invoice.id:
                    raise InvariantViolation(
                        f"Invoice for tenant {invoice.tenant_id} "
                        f"{invoice.month:02d}/{invoice.year} already exists",
                        record_id=invoice.tenant_id,
                    )
                taken[key] = invoice.id
            for invoice in invoices:
                self._invoices[invoice.id] = invoice
        logger.debug(f"Upserted {len(invoices)} invoices")
        return list(invoices)

    def update_invoice(self, invoice_id: UUID, patch: Dict[str, Any]) -> MonthlyInvoice:
        with self._lock:
            updated = apply_patch(self.get_invoice(invoice_id), patch, "invoice")
            self._invoices[invoice_id] = updated
        return updated

    def update_tenant(self, tenant_id: UUID, patch: Dict[str, Any]) -> Tenant:
        with self._lock:
            updated = apply_patch(self.get_tenant(tenant_id), patch, "tenant")
            self._tenants[tenant_id] = updated
        return updated

    def create_audit_record(self, record: AuditRecord) -> AuditRecord:
        with self._lock:
            self._audit.append(record)
        return record

    def create_invoice_lines(self, lines: Sequence[InvoiceLine]) -> List[InvoiceLine]:
        with self._lock:
            self._lines.extend(lines)
        return list(lines)

    def create_allocations(
        self, allocations: Sequence[PaymentAllocation]
    ) -> List[PaymentAllocation]:
        with self._lock:
            self._allocations.extend(allocations)
        return list(allocations)

    @contextmanager
    def transaction(self) -> Iterator["InMemoryGateway"]:
        with self._lock:
            snapshot = (
                dict(self._units),
                dict(self._tenants),
                dict(self._invoices),
                dict(self._payments),
                list(self._lines),
                list(self._audit),
                list(self._allocations),
            )
            try:
                yield self
            except Exception:
                (
                    self._units,
                    self._tenants,
                    self._invoices,
                    self._payments,
                    self._lines,
                    self._audit,
                    self._allocations,
                ) = snapshot
                logger.debug("Transaction rolled back")
                raise
