# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Tenant account views: yearly billed-vs-paid summary and open items."""

from __future__ import annotations

import datetime
from typing import Optional, Sequence
from uuid import UUID

import pandas as pd

from ..core.primitives import InvoiceStatusEnum, Model, round_money, sum_money
from ..core.records import MonthlyInvoice
from ..gateway import InvoiceFilter, PersistenceGateway

OPEN_ITEM_COLUMNS = [
    "invoice_id",
    "year",
    "month",
    "due_date",
    "total_amount",
    "paid_amount",
    "outstanding",
    "dunning_level",
    "status",
    "days_overdue",
]


class TenantYearSummary(Model):
    """Billed vs. paid for one tenant and calendar year."""

    tenant_id: UUID
    year: int
    total_billed: float
    total_paid: float
    balance: float
    invoice_count: int
    open_invoices: int


def summarize_tenant_year(
    gateway: PersistenceGateway, tenant_id: UUID, year: int
) -> TenantYearSummary:
    """
    Summarize a tenant's account for a year.

    Billed is the sum of invoice totals (carry-forward included); paid is the
    sum of payments booked in the year. A positive balance is money owed.
    """
    invoices = gateway.list_invoices(InvoiceFilter(tenant_id=tenant_id, year=year))
    payments = gateway.list_payments_in_range(
        tenant_id, datetime.date(year, 1, 1), datetime.date(year, 12, 31)
    )
    billed = sum_money(inv.total_amount for inv in invoices)
    paid = sum_money(p.amount for p in payments)
    outstanding = InvoiceStatusEnum.outstanding()
    return TenantYearSummary(
        tenant_id=tenant_id,
        year=year,
        total_billed=billed,
        total_paid=paid,
        balance=round_money(billed - paid),
        invoice_count=len(invoices),
        open_invoices=sum(1 for inv in invoices if inv.status in outstanding),
    )


def open_items_frame(
    invoices: Sequence[MonthlyInvoice], today: Optional[datetime.date] = None
) -> pd.DataFrame:
    """
    Outstanding invoices as a DataFrame, oldest due date first.

    ``days_overdue`` is only populated when ``today`` is given.
    """
    rows = [
        {
            "invoice_id": inv.id,
            "year": inv.year,
            "month": inv.month,
            "due_date": inv.due_date,
            "total_amount": inv.total_amount,
            "paid_amount": inv.paid_amount,
            "outstanding": inv.outstanding,
            "dunning_level": inv.dunning_level,
            "status": inv.status.value,
            "days_overdue": max(0, inv.days_overdue(today)) if today else None,
        }
        for inv in invoices
        if inv.outstanding > 0
    ]
    frame = pd.DataFrame(rows, columns=OPEN_ITEM_COLUMNS)
    if frame.empty:
        return frame
    return frame.sort_values(["due_date", "year", "month"]).reset_index(drop=True)
