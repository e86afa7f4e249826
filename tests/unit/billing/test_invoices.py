# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for monthly invoice generation.
"""

import logging
from datetime import date
from uuid import uuid4

import pytest

from rentbook.billing import InvoiceGenerator, build_invoice
from rentbook.core import Tenant
from rentbook.core.primitives import (
    BillingSettings,
    EngineSettings,
    IssueKindEnum,
    LeaseStatusEnum,
    UnitUsageEnum,
)
from rentbook.gateway import InvoiceFilter


class TestBuildInvoice:
    """Test the pure invoice computation."""

    def test_residential_vat_is_extracted_not_added(self):
        tenant = Tenant(id=uuid4(), rent=650.0, opex_advance=100.0, heating_advance=80.0)
        invoice = build_invoice(tenant, UnitUsageEnum.RESIDENTIAL, 2025, 3, date(2025, 3, 5))

        assert invoice.total_amount == 830.0
        assert (invoice.vat_rate_rent, invoice.vat_rate_opex, invoice.vat_rate_heating) == (
            10.0,
            10.0,
            20.0,
        )
        assert invoice.vat_rent == 59.09
        assert invoice.vat_opex == 9.09
        assert invoice.vat_heating == 13.33
        assert invoice.vat_total == 81.51

    def test_commercial_unit_uses_commercial_rate(self):
        tenant = Tenant(id=uuid4(), rent=650.0, opex_advance=100.0, heating_advance=80.0)
        invoice = build_invoice(tenant, UnitUsageEnum.GARAGE, 2025, 3, date(2025, 3, 5))

        assert invoice.vat_rate_rent == 20.0
        assert invoice.vat_rent == 108.33
        assert invoice.vat_opex == 16.67
        assert invoice.total_amount == 830.0

    def test_missing_charges_bill_as_zero(self, caplog):
        tenant = Tenant(id=uuid4(), rent=500.0)
        with caplog.at_level(logging.WARNING, logger="rentbook.billing.invoices"):
            invoice = build_invoice(tenant, None, 2025, 3, date(2025, 3, 5))

        assert invoice.opex == 0.0
        assert invoice.heating == 0.0
        assert invoice.total_amount == 500.0
        assert "opex_advance" in caplog.text


class TestInvoiceGenerator:
    """Test invoice runs against the gateway."""

    def test_creates_one_invoice_per_active_tenant(self, gateway, add_tenant, scope_id):
        add_tenant()
        add_tenant(rent=900.0)
        add_tenant(status=LeaseStatusEnum.ENDED)

        result = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id)

        assert result.created == 2
        assert result.skipped == 0
        assert result.failed == []
        assert {inv.due_date for inv in result.invoices} == {date(2025, 3, 5)}
        assert len(gateway.list_invoices(InvoiceFilter(year=2025, month=3))) == 2

    def test_rerun_is_idempotent(self, gateway, add_tenant, scope_id):
        add_tenant()
        add_tenant()
        generator = InvoiceGenerator(gateway)
        generator.generate(2025, 3, scope_id=scope_id)

        result = generator.generate(2025, 3, scope_id=scope_id)

        assert result.created == 0
        assert result.skipped == 2
        assert result.invoices == []
        assert len(gateway.list_invoices(InvoiceFilter(year=2025, month=3))) == 2

    def test_new_tenant_billed_on_rerun(self, gateway, add_tenant, scope_id):
        add_tenant()
        generator = InvoiceGenerator(gateway)
        generator.generate(2025, 3, scope_id=scope_id)
        newcomer = add_tenant()

        result = generator.generate(2025, 3, scope_id=scope_id)

        assert result.created == 1
        assert result.skipped == 1
        assert result.invoices[0].tenant_id == newcomer.id

    def test_january_includes_carry_forward(self, gateway, add_tenant, add_invoice, scope_id):
        tenant = add_tenant()
        add_invoice(tenant, 2024, 12)

        result = InvoiceGenerator(gateway).generate(2025, 1, scope_id=scope_id)

        invoice = result.invoices[0]
        assert result.carry_forwards_calculated == 1
        assert invoice.carry_forward_rent == 650.0
        assert invoice.carry_forward_opex == 100.0
        assert invoice.carry_forward_heating == 80.0
        assert invoice.total_amount == 1660.0

    def test_other_months_have_no_carry_forward(self, gateway, add_tenant, add_invoice, scope_id):
        tenant = add_tenant()
        add_invoice(tenant, 2025, 1)

        result = InvoiceGenerator(gateway).generate(2025, 2, scope_id=scope_id)

        assert result.carry_forwards_calculated == 0
        assert result.invoices[0].carry_forward_total == 0.0
        assert result.invoices[0].total_amount == 830.0

    def test_commercial_unit(self, gateway, add_tenant, scope_id):
        add_tenant(usage_type=UnitUsageEnum.BUSINESS)
        invoice = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id).invoices[0]
        assert invoice.vat_rate_rent == 20.0
        assert invoice.vat_rate_opex == 20.0

    def test_untyped_unit_defaults_to_residential(self, gateway, add_tenant, scope_id):
        add_tenant(usage_type=None)
        invoice = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id).invoices[0]
        assert invoice.vat_rate_rent == 10.0

    def test_tenant_without_unit_uses_default_usage(self, gateway):
        tenant = Tenant(id=uuid4(), rent=400.0)
        result = InvoiceGenerator(gateway).generate(2025, 3, tenants=[tenant])
        assert result.created == 1
        assert result.invoices[0].vat_rate_rent == 10.0

    def test_custom_due_day(self, gateway, add_tenant, scope_id):
        add_tenant()
        settings = EngineSettings(billing=BillingSettings(due_day=15))
        result = InvoiceGenerator(gateway, settings).generate(2025, 2, scope_id=scope_id)
        assert result.invoices[0].due_date == date(2025, 2, 15)

    def test_invoice_lines_persisted(self, gateway, add_tenant, scope_id):
        add_tenant()
        result = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id)
        lines = gateway.invoice_lines
        assert len(lines) == 3
        assert {line.invoice_id for line in lines} == {result.invoices[0].id}

    def test_to_dataframe(self, gateway, add_tenant, scope_id):
        add_tenant()
        add_tenant()
        frame = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id).to_dataframe()
        assert len(frame) == 2
        assert frame["total_amount"].sum() == pytest.approx(1660.0)

    def test_invalid_arguments(self, gateway, scope_id):
        generator = InvoiceGenerator(gateway)
        with pytest.raises(ValueError):
            generator.generate(2025, 13, scope_id=scope_id)
        with pytest.raises(ValueError):
            generator.generate(2025, 3)


class TestInvoiceGeneratorFailures:
    """Test per-record failure isolation."""

    def test_shared_unit_is_hard_failure_for_both(self, gateway, add_tenant, scope_id):
        first = add_tenant()
        second = add_tenant(unit_id=first.unit_id)
        bystander = add_tenant()

        result = InvoiceGenerator(gateway).generate(2025, 3, scope_id=scope_id)

        assert result.created == 1
        assert result.invoices[0].tenant_id == bystander.id
        assert {issue.record_id for issue in result.hard_failures} == {
            str(first.id),
            str(second.id),
        }
        assert all(
            issue.kind == IssueKindEnum.INVARIANT_VIOLATION for issue in result.failed
        )

    def test_vanished_unit_is_not_found(self, gateway, add_tenant):
        orphan = add_tenant()
        healthy = add_tenant()
        gateway.remove_unit(orphan.unit_id)

        result = InvoiceGenerator(gateway).generate(2025, 3, tenants=[orphan, healthy])

        assert result.created == 1
        assert result.invoices[0].tenant_id == healthy.id
        assert len(result.failed) == 1
        assert result.failed[0].kind == IssueKindEnum.NOT_FOUND
        assert result.failed[0].record_id == str(orphan.id)
        assert not result.failed[0].hard

    def test_carry_forward_counted_only_for_built_invoices(self, gateway, add_tenant):
        orphan = add_tenant()
        healthy = add_tenant()
        gateway.remove_unit(orphan.unit_id)

        result = InvoiceGenerator(gateway).generate(2025, 1, tenants=[orphan, healthy])

        assert result.created == 1
        assert result.carry_forwards_calculated == 1
        assert result.failed[0].record_id == str(orphan.id)

    def test_concurrent_insert_isolated(self, gateway, add_tenant, add_invoice, monkeypatch):
        racer = add_tenant()
        other = add_tenant()
        add_invoice(racer, 2025, 3)
        # Another writer billed the tenant after the skip check
        monkeypatch.setattr(gateway, "list_invoices", lambda invoice_filter: [])

        result = InvoiceGenerator(gateway).generate(2025, 3, tenants=[racer, other])

        assert result.created == 1
        assert result.invoices[0].tenant_id == other.id
        assert result.hard_failures[0].record_id == str(racer.id)
