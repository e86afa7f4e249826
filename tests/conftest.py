# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Test utilities and fixtures for Rentbook testing.

Factory fixtures seed the in-memory gateway with units, tenants, invoices
and payments without spelling out every field in each test.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

import pytest

from rentbook.billing import build_invoice
from rentbook.core.primitives import InvoiceStatusEnum, UnitUsageEnum
from rentbook.core.records import MonthlyInvoice, Payment, Tenant
from rentbook.gateway import InMemoryGateway, RecordingNotifier


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def scope_id() -> UUID:
    return uuid4()


@pytest.fixture
def add_tenant(gateway: InMemoryGateway, scope_id: UUID):
    """Factory: create a unit in the scope and an active tenant on it."""

    def _add_tenant(
        rent: Optional[float] = 650.0,
        opex: Optional[float] = 100.0,
        heating: Optional[float] = 80.0,
        usage_type: Optional[UnitUsageEnum] = UnitUsageEnum.RESIDENTIAL,
        unit_id: Optional[UUID] = None,
        **fields,
    ) -> Tenant:
        if unit_id is None:
            unit_id = gateway.add_unit(
                {"id": uuid4(), "scope_id": scope_id, "usage_type": usage_type}
            ).id
        return gateway.add_tenant(
            {
                "id": uuid4(),
                "unit_id": unit_id,
                "first_name": "Anna",
                "last_name": "Huber",
                "email": "anna.huber@example.com",
                "rent": rent,
                "opex_advance": opex,
                "heating_advance": heating,
                **fields,
            }
        )

    return _add_tenant


@pytest.fixture
def add_invoice(gateway: InMemoryGateway):
    """Factory: persist an invoice for a tenant built from its charges."""

    def _add_invoice(
        tenant: Tenant,
        year: int = 2025,
        month: int = 1,
        due_date: Optional[date] = None,
        **overrides,
    ) -> MonthlyInvoice:
        invoice = build_invoice(
            tenant,
            UnitUsageEnum.RESIDENTIAL,
            year,
            month,
            due_date or date(year, month, 5),
        )
        if overrides:
            invoice = MonthlyInvoice.model_validate({**invoice.model_dump(), **overrides})
        gateway.upsert_invoices([invoice])
        return invoice

    return _add_invoice


@pytest.fixture
def add_payment(gateway: InMemoryGateway):
    """Factory: persist a payment for a tenant."""

    def _add_payment(
        tenant: Tenant, amount: float, booking_date: date, **fields
    ) -> Payment:
        return gateway.add_payment(
            {
                "id": uuid4(),
                "tenant_id": tenant.id,
                "amount": amount,
                "booking_date": booking_date,
                **fields,
            }
        )

    return _add_payment


@pytest.fixture
def make_invoice():
    """Factory: standalone invoice (not persisted) with the given gross components."""
    return _make_invoice


def _make_invoice(
    opex: float = 120.0,
    heating: float = 80.0,
    rent: float = 650.0,
    paid_amount: float = 0.0,
    status: InvoiceStatusEnum = InvoiceStatusEnum.OPEN,
    due_date: date = date(2025, 1, 5),
    **fields,
) -> MonthlyInvoice:
    carried = sum(
        fields.get(k, 0.0)
        for k in (
            "carry_forward_rent",
            "carry_forward_opex",
            "carry_forward_heating",
            "carry_forward_other",
        )
    )
    total = round(opex + heating + rent + carried, 2)
    return MonthlyInvoice(
        tenant_id=fields.pop("tenant_id", uuid4()),
        year=due_date.year,
        month=due_date.month,
        rent=rent,
        opex=opex,
        heating=heating,
        total_amount=fields.pop("total_amount", total),
        due_date=due_date,
        paid_amount=paid_amount,
        status=status,
        **fields,
    )
