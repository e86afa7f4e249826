# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for tenant account summaries.
"""

from datetime import date

from rentbook.billing import open_items_frame, summarize_tenant_year
from rentbook.billing.summary import OPEN_ITEM_COLUMNS
from rentbook.core.primitives import InvoiceStatusEnum


class TestSummarizeTenantYear:
    """Test billed-vs-paid summary."""

    def test_balance(self, gateway, add_tenant, add_invoice, add_payment):
        tenant = add_tenant()
        add_invoice(tenant, 2025, 1)
        add_invoice(tenant, 2025, 2, paid_amount=830.0, status=InvoiceStatusEnum.PAID)
        add_invoice(tenant, 2024, 12)
        add_payment(tenant, 830.0, date(2025, 2, 3))
        add_payment(tenant, 100.0, date(2025, 2, 20))

        summary = summarize_tenant_year(gateway, tenant.id, 2025)

        assert summary.total_billed == 1660.0
        assert summary.total_paid == 930.0
        assert summary.balance == 730.0
        assert summary.invoice_count == 2
        assert summary.open_invoices == 1

    def test_empty_year(self, gateway, add_tenant):
        tenant = add_tenant()
        summary = summarize_tenant_year(gateway, tenant.id, 2025)
        assert summary.balance == 0.0
        assert summary.invoice_count == 0


class TestOpenItemsFrame:
    """Test the open-items DataFrame."""

    def test_only_outstanding_sorted_oldest_first(self, make_invoice):
        invoices = [
            make_invoice(due_date=date(2025, 3, 5)),
            make_invoice(due_date=date(2025, 1, 5), paid_amount=850.0),
            make_invoice(due_date=date(2025, 2, 5), paid_amount=100.0),
        ]
        frame = open_items_frame(invoices, today=date(2025, 3, 15))

        assert list(frame.columns) == OPEN_ITEM_COLUMNS
        assert list(frame["month"]) == [2, 3]
        assert list(frame["outstanding"]) == [750.0, 850.0]
        assert list(frame["days_overdue"]) == [38, 10]

    def test_days_overdue_not_negative(self, make_invoice):
        frame = open_items_frame([make_invoice(due_date=date(2025, 3, 5))], today=date(2025, 3, 1))
        assert frame.loc[0, "days_overdue"] == 0

    def test_empty(self):
        frame = open_items_frame([])
        assert frame.empty
        assert list(frame.columns) == OPEN_ITEM_COLUMNS
