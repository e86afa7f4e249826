# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Payment waterfall allocation.

A payment is applied to an invoice's remaining components in the fixed
order opex -> heating -> rent -> other, each capped at what is still due.
Whatever the invoice cannot absorb moves on to the tenant's next open
invoice (oldest due date first) and, once those are exhausted, is returned
as overpayment.

The remaining amount per component is never stored. It is derived by
replaying the invoice's paid-to-date total through the same waterfall, so
the component breakdown depends only on the cumulative amount paid and is
identical however the payments were split.

VAT is a property of each component's allocation (the portion extracted at
the component's rate), not a bucket competing for funds.
"""

from __future__ import annotations

import datetime
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from pydantic import Field

from ..core.errors import BatchIssue, RecordValidationError, RentbookError
from ..core.primitives import (
    ALLOCATION_ORDER,
    ChargeComponentEnum,
    EngineSettings,
    InvoiceStatusEnum,
    Model,
    round_money,
    sum_money,
    vat_from_gross,
)
from ..core.records import MonthlyInvoice, Payment, PaymentAllocation
from ..gateway import InvoiceFilter, PersistenceGateway

logger = logging.getLogger(__name__)

ComponentAmounts = Dict[ChargeComponentEnum, float]


class PaymentSplit(Model):
    """Result of running an amount through the component waterfall."""

    consumed: ComponentAmounts
    vat: ComponentAmounts
    overpayment: float = 0.0

    @property
    def total(self) -> float:
        return sum_money(self.consumed.values())

    @property
    def vat_total(self) -> float:
        return sum_money(self.vat.values())

    @property
    def net(self) -> ComponentAmounts:
        return {c: round_money(self.consumed[c] - self.vat[c]) for c in self.consumed}


def allocate_payment(
    amount: float,
    remaining: Mapping[ChargeComponentEnum, float],
    vat_rates: Optional[Mapping[ChargeComponentEnum, float]] = None,
) -> PaymentSplit:
    """
    Split ``amount`` across remaining component amounts in waterfall order.

    Args:
        amount: Payment amount to allocate
        remaining: Still-due gross amount per component (missing = 0)
        vat_rates: VAT percent per component, used to disclose the VAT
            contained in each allocated amount (missing = 0)

    Returns:
        PaymentSplit with the gross amount consumed and VAT contained per
        component, and the overpayment left after all components

    Raises:
        ValueError: If ``amount`` is negative

    Example:
        >>> split = allocate_payment(300, {OPEX: 120, HEATING: 80, RENT: 650})
        >>> split.consumed[RENT], split.overpayment
        (100.0, 0.0)
    """
    if amount < 0:
        raise ValueError(f"Payment amount must be non-negative, got {amount}")
    vat_rates = vat_rates or {}

    left = round_money(amount)
    consumed: ComponentAmounts = {}
    vat: ComponentAmounts = {}
    for component in ALLOCATION_ORDER:
        due = max(0.0, round_money(remaining.get(component, 0.0)))
        take = round_money(min(left, due))
        consumed[component] = take
        vat[component] = round_money(vat_from_gross(take, vat_rates.get(component, 0.0)))
        left = round_money(left - take)

    return PaymentSplit(consumed=consumed, vat=vat, overpayment=left)


def invoice_vat_rates(invoice: MonthlyInvoice) -> ComponentAmounts:
    return {c: invoice.vat_rate_for(c) for c in ALLOCATION_ORDER}


def remaining_components(invoice: MonthlyInvoice) -> ComponentAmounts:
    """
    Still-due gross amount per component of an invoice.

    Replays ``paid_amount`` through the waterfall against the billed
    components. If a rent credit larger than the rent leaves the components
    above the invoice's outstanding balance, the excess is trimmed from the
    end of the waterfall.
    """
    dues = invoice.component_dues()
    settled = allocate_payment(invoice.paid_amount, dues).consumed
    remaining = {c: round_money(dues[c] - settled[c]) for c in ALLOCATION_ORDER}

    excess = round_money(sum_money(remaining.values()) - invoice.outstanding)
    for component in reversed(ALLOCATION_ORDER):
        if excess <= 0:
            break
        cut = min(excess, remaining[component])
        remaining[component] = round_money(remaining[component] - cut)
        excess = round_money(excess - cut)
    return remaining


def next_status(
    total_amount: float,
    paid_amount: float,
    current: InvoiceStatusEnum,
    epsilon: float = 0.01,
) -> InvoiceStatusEnum:
    """Status after a payment: paid within ``epsilon``, partially paid, or unchanged."""
    if paid_amount >= total_amount - epsilon:
        return InvoiceStatusEnum.PAID
    if paid_amount > 0:
        return InvoiceStatusEnum.PARTIALLY_PAID
    return current


class InvoiceAllocation(Model):
    """The part of one payment consumed by one invoice."""

    invoice_id: UUID
    applied: float
    split: PaymentSplit
    paid_before: float
    paid_after: float
    remaining: float
    status_before: InvoiceStatusEnum
    status_after: InvoiceStatusEnum

    def consumed(self, component: ChargeComponentEnum) -> float:
        return self.split.consumed.get(component, 0.0)


class PaymentApplication(Model):
    """A payment spread over one or more invoices."""

    payment_id: Optional[UUID] = None
    amount: float
    allocations: List[InvoiceAllocation] = Field(default_factory=list)
    overpayment: float = 0.0

    @property
    def total_applied(self) -> float:
        return sum_money(a.applied for a in self.allocations)


class PaymentPostingResult(Model):
    """Outcome of posting a batch of payments."""

    applications: List[PaymentApplication] = Field(default_factory=list)
    failed: List[BatchIssue] = Field(default_factory=list)

    @property
    def total_applied(self) -> float:
        return sum_money(a.total_applied for a in self.applications)

    @property
    def total_overpayment(self) -> float:
        return sum_money(a.overpayment for a in self.applications)


def _oldest_first(invoices: Iterable[MonthlyInvoice]) -> List[MonthlyInvoice]:
    return sorted(invoices, key=lambda inv: (inv.due_date, inv.year, inv.month, str(inv.id)))


class PaymentAllocator:
    """
    Applies payments to a tenant's invoices.

    ``plan`` is pure and deterministic. ``post_payment`` persists the
    resulting paid-to-date totals and statuses inside one gateway transaction.
    """

    def __init__(
        self,
        gateway: Optional[PersistenceGateway] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.gateway = gateway
        self.settings = settings or EngineSettings()

    def allocate_to_invoice(
        self, invoice: MonthlyInvoice, amount: float
    ) -> Tuple[InvoiceAllocation, float]:
        """Apply up to ``amount`` to one invoice; returns the allocation and the unused rest."""
        split = allocate_payment(
            min(round_money(amount), invoice.outstanding),
            remaining_components(invoice),
            invoice_vat_rates(invoice),
        )
        applied = split.total
        paid_after = round_money(invoice.paid_amount + applied)
        status_after = (
            next_status(
                invoice.total_amount,
                paid_after,
                invoice.status,
                self.settings.billing.paid_epsilon,
            )
            if applied > 0
            else invoice.status
        )
        allocation = InvoiceAllocation(
            invoice_id=invoice.id,
            applied=applied,
            split=split,
            paid_before=invoice.paid_amount,
            paid_after=paid_after,
            remaining=max(0.0, round_money(invoice.total_amount - paid_after)),
            status_before=invoice.status,
            status_after=status_after,
        )
        return allocation, round_money(amount - applied)

    def plan(
        self,
        amount: float,
        invoices: Sequence[MonthlyInvoice],
        payment_id: Optional[UUID] = None,
        preserve_order: bool = False,
    ) -> PaymentApplication:
        """
        Spread ``amount`` over ``invoices`` without persisting anything.

        Invoices are visited oldest due date first unless ``preserve_order``
        is set; invoices with nothing outstanding are passed over.
        """
        if amount < 0:
            raise ValueError(f"Payment amount must be non-negative, got {amount}")
        ordered = list(invoices) if preserve_order else _oldest_first(invoices)

        left = round_money(amount)
        allocations: List[InvoiceAllocation] = []
        for invoice in ordered:
            if left <= 0:
                break
            if invoice.outstanding <= 0:
                continue
            allocation, left = self.allocate_to_invoice(invoice, left)
            if allocation.applied > 0:
                allocations.append(allocation)

        return PaymentApplication(
            payment_id=payment_id,
            amount=round_money(amount),
            allocations=allocations,
            overpayment=left,
        )

    def unallocated_amount(self, payment: Payment) -> float:
        """Part of ``payment`` not yet recorded in the allocation ledger."""
        if self.gateway is None:
            raise ValueError("unallocated_amount requires a persistence gateway")
        allocated = sum_money(
            a.applied_amount for a in self.gateway.list_allocations(payment_id=payment.id)
        )
        return max(0.0, round_money(payment.amount - allocated))

    def unallocated_payments(
        self, tenant_id: UUID, start: datetime.date, end: datetime.date
    ) -> List[Payment]:
        """A tenant's payments booked in the range that still have an unallocated part."""
        return [
            p
            for p in self.gateway.list_payments_in_range(tenant_id, start, end)
            if self.unallocated_amount(p) > 0
        ]

    def post_payment(self, payment: Payment) -> PaymentApplication:
        """
        Apply the unallocated part of a payment and persist the result.

        The referenced invoice (if any) is served first, then the tenant's
        other outstanding invoices, oldest due date first. Reads, planning and
        writes share one transaction; each invoice is re-read right before it
        is credited, so its paid total only ever grows by the amount applied.
        Posting a payment that is already fully allocated changes nothing.

        Raises:
            RecordNotFoundError: If the referenced invoice does not exist
            RecordValidationError: If the referenced invoice belongs to another tenant
        """
        if self.gateway is None:
            raise ValueError("post_payment requires a persistence gateway")

        with self.gateway.transaction():
            amount = self.unallocated_amount(payment)
            if amount <= 0:
                logger.info(f"Payment {payment.id} is already fully allocated; skipping")
                return PaymentApplication(payment_id=payment.id, amount=0.0)

            planned = self.plan(
                amount, self._targets(payment), payment_id=payment.id, preserve_order=True
            )
            left = planned.overpayment
            allocations: List[InvoiceAllocation] = []
            for step in planned.allocations:
                current = self.gateway.get_invoice(step.invoice_id)
                allocation, rest = self.allocate_to_invoice(current, step.applied)
                left = round_money(left + rest)
                if allocation.applied <= 0:
                    continue
                self.gateway.update_invoice(
                    allocation.invoice_id,
                    {"paid_amount": allocation.paid_after, "status": allocation.status_after},
                )
                allocations.append(allocation)

            self.gateway.create_allocations(
                [self._ledger_row(payment, allocation) for allocation in allocations]
            )

        application = PaymentApplication(
            payment_id=payment.id, amount=amount, allocations=allocations, overpayment=left
        )
        if application.overpayment > 0:
            logger.info(
                f"Payment {payment.id} left {application.overpayment:,.2f} unapplied "
                f"for tenant {payment.tenant_id}"
            )
        return application

    def _targets(self, payment: Payment) -> List[MonthlyInvoice]:
        targets: List[MonthlyInvoice] = []
        if payment.invoice_id is not None:
            referenced = self.gateway.get_invoice(payment.invoice_id)
            if referenced.tenant_id != payment.tenant_id:
                raise RecordValidationError(
                    f"Payment {payment.id} references invoice {referenced.id} "
                    f"of another tenant",
                    record_id=payment.id,
                )
            targets.append(referenced)

        open_invoices = self.gateway.list_invoices(
            InvoiceFilter(
                tenant_id=payment.tenant_id, statuses=InvoiceStatusEnum.outstanding()
            )
        )
        targets.extend(
            inv for inv in _oldest_first(open_invoices) if inv.id != payment.invoice_id
        )
        return targets

    @staticmethod
    def _ledger_row(payment: Payment, allocation: InvoiceAllocation) -> PaymentAllocation:
        return PaymentAllocation(
            payment_id=payment.id,
            invoice_id=allocation.invoice_id,
            tenant_id=payment.tenant_id,
            applied_amount=allocation.applied,
            rent=allocation.consumed(ChargeComponentEnum.RENT),
            opex=allocation.consumed(ChargeComponentEnum.OPEX),
            heating=allocation.consumed(ChargeComponentEnum.HEATING),
            other=allocation.consumed(ChargeComponentEnum.OTHER),
            booking_date=payment.booking_date,
        )

    def post_payments(self, payments: Iterable[Payment]) -> PaymentPostingResult:
        """Post payments in booking order; per-payment failures are collected, not raised."""
        applications: List[PaymentApplication] = []
        failed: List[BatchIssue] = []
        for payment in sorted(payments, key=lambda p: (p.booking_date, str(p.id))):
            try:
                applications.append(self.post_payment(payment))
            except RentbookError as e:
                logger.warning(f"Payment {payment.id} not posted: {e.message}")
                failed.append(BatchIssue.from_error(e, record_id=payment.id))
        return PaymentPostingResult(applications=applications, failed=failed)
