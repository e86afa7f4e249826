# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Entity records consumed and produced by the engines.

Each entity is an explicit, immutable pydantic record. Required fields are
required; optional charge fields are ``None`` when the source row lacks
them, and the engines decide how to default them. Unknown fields are
rejected, so malformed rows fail at the gateway boundary instead of deep
inside an algorithm.
"""

from __future__ import annotations

import datetime
from typing import Dict, Optional
from uuid import UUID, uuid4

from pydantic import Field, model_validator
from typing_extensions import Self

from .primitives import (
    AdjustmentStatusEnum,
    ChargeComponentEnum,
    DunningLevelInt,
    InvoiceStatusEnum,
    LeaseStatusEnum,
    Model,
    MonthInt,
    NonNegativeFloat,
    PositiveFloat,
    UnitUsageEnum,
    VatRatePercent,
    round_money,
    sum_money,
)


class Unit(Model):
    """A rentable unit inside a manager's scope (property/organization)."""

    id: UUID
    scope_id: UUID
    usage_type: Optional[UnitUsageEnum] = None
    label: Optional[str] = None


class Tenant(Model):
    """
    Lease occupant of a unit.

    Attributes:
        rent: Monthly gross base rent
        opex_advance: Monthly gross operating-cost advance
        heating_advance: Monthly gross heating-cost advance
        index_baseline: Price-index value the current rent is linked to
        last_index_adjustment: Effective date of the last index adjustment
    """

    id: UUID
    unit_id: Optional[UUID] = None
    status: LeaseStatusEnum = LeaseStatusEnum.ACTIVE
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    lease_start: Optional[datetime.date] = None
    lease_end: Optional[datetime.date] = None
    rent: Optional[NonNegativeFloat] = None
    opex_advance: Optional[NonNegativeFloat] = None
    heating_advance: Optional[NonNegativeFloat] = None
    index_baseline: Optional[PositiveFloat] = None
    last_index_adjustment: Optional[datetime.date] = None
    deleted_at: Optional[datetime.datetime] = None

    @model_validator(mode="after")
    def check_lease_dates(self) -> Self:
        if self.lease_start and self.lease_end and self.lease_end < self.lease_start:
            raise ValueError("lease_end must not be before lease_start")
        return self

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p) or str(self.id)

    @property
    def is_active(self) -> bool:
        return self.status == LeaseStatusEnum.ACTIVE and self.deleted_at is None


class MonthlyInvoice(Model):
    """
    One invoice per (tenant, year, month).

    Component amounts are gross; ``vat_*`` fields disclose the VAT contained
    in them. ``total_amount`` is the sum of the components and all
    carry-forward components. A negative ``carry_forward_rent`` is a credit
    from a prior-year overpayment.
    """

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    unit_id: Optional[UUID] = None
    year: int = Field(..., ge=1900, le=9999)
    month: MonthInt

    rent: NonNegativeFloat = 0.0
    opex: NonNegativeFloat = 0.0
    heating: NonNegativeFloat = 0.0

    vat_rate_rent: VatRatePercent = 0.0
    vat_rate_opex: VatRatePercent = 0.0
    vat_rate_heating: VatRatePercent = 0.0
    vat_rent: float = 0.0
    vat_opex: float = 0.0
    vat_heating: float = 0.0
    vat_total: float = 0.0

    carry_forward_rent: float = 0.0
    carry_forward_opex: float = 0.0
    carry_forward_heating: float = 0.0
    carry_forward_other: float = 0.0

    total_amount: float
    due_date: datetime.date
    paid_amount: NonNegativeFloat = 0.0
    dunning_level: DunningLevelInt = 0
    status: InvoiceStatusEnum = InvoiceStatusEnum.OPEN
    last_reminder_at: Optional[datetime.date] = None
    last_dunning_at: Optional[datetime.date] = None

    @property
    def period(self) -> tuple[int, int]:
        return (self.year, self.month)

    @property
    def carry_forward_total(self) -> float:
        return sum_money(
            (
                self.carry_forward_rent,
                self.carry_forward_opex,
                self.carry_forward_heating,
                self.carry_forward_other,
            )
        )

    @property
    def outstanding(self) -> float:
        """Unpaid balance, never negative."""
        return max(0.0, round_money(self.total_amount - self.paid_amount))

    def component_dues(self) -> Dict[ChargeComponentEnum, float]:
        """Gross amount billed per component, carry-forward folded in, floored at zero."""
        return {
            ChargeComponentEnum.RENT: max(0.0, round_money(self.rent + self.carry_forward_rent)),
            ChargeComponentEnum.OPEX: max(0.0, round_money(self.opex + self.carry_forward_opex)),
            ChargeComponentEnum.HEATING: max(
                0.0, round_money(self.heating + self.carry_forward_heating)
            ),
            ChargeComponentEnum.OTHER: max(0.0, round_money(self.carry_forward_other)),
        }

    def vat_rate_for(self, component: ChargeComponentEnum) -> float:
        return {
            ChargeComponentEnum.RENT: self.vat_rate_rent,
            ChargeComponentEnum.OPEX: self.vat_rate_opex,
            ChargeComponentEnum.HEATING: self.vat_rate_heating,
        }.get(component, 0.0)

    def days_overdue(self, today: datetime.date) -> int:
        return (today - self.due_date).days


class InvoiceLine(Model):
    """Disclosure line of an invoice: one charge or carry-forward component."""

    id: UUID = Field(default_factory=uuid4)
    invoice_id: UUID
    component: ChargeComponentEnum
    description: str
    gross_amount: float
    net_amount: float
    vat_rate: VatRatePercent
    reference: str


class Payment(Model):
    """An incoming bank receipt. Always additive to an invoice's paid total."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    amount: NonNegativeFloat
    booking_date: datetime.date
    invoice_id: Optional[UUID] = None
    reference: str = ""


class PaymentAllocation(Model):
    """
    Ledger row: the part of one payment applied to one invoice.

    The sum of a payment's allocations is the portion already applied; the
    rest is unallocated and may still be posted.
    """

    id: UUID = Field(default_factory=uuid4)
    payment_id: UUID
    invoice_id: UUID
    tenant_id: UUID
    applied_amount: NonNegativeFloat
    rent: NonNegativeFloat = 0.0
    opex: NonNegativeFloat = 0.0
    heating: NonNegativeFloat = 0.0
    other: NonNegativeFloat = 0.0
    booking_date: datetime.date


class VpiAdjustment(Model):
    """Immutable audit record of one applied index-based rent increase."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    base_index: PositiveFloat
    current_index: PositiveFloat
    old_rent: NonNegativeFloat
    new_rent: NonNegativeFloat
    percentage_change: float = Field(..., description="Rent change in percent.")
    effective_date: datetime.date
    status: AdjustmentStatusEnum = AdjustmentStatusEnum.APPLIED
    applied_at: Optional[datetime.datetime] = None


class RentHistoryEntry(Model):
    """Rent level valid from a date, appended whenever the rent changes."""

    id: UUID = Field(default_factory=uuid4)
    tenant_id: UUID
    rent: NonNegativeFloat
    opex_advance: NonNegativeFloat = 0.0
    heating_advance: NonNegativeFloat = 0.0
    valid_from: datetime.date
    reason: str
