# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Prior-year arrears carry-forward.

Reconstructs what a tenant was billed and what they paid in the previous
calendar year and derives the unpaid amount per charge component. The
result is added to the January invoice of the new year.

Sign convention: an overpayment is carried as a NEGATIVE rent component
(credit); all other components are zero in that case. Downstream totals
simply add the carry-forward components.

Waterfall: when there is a shortfall, the year's payments are deemed to
have settled opex first, then heating, then rent. This decides which
component the arrears are reported against and must not be reordered.
"""

from __future__ import annotations

import datetime
import logging
from typing import Optional
from uuid import UUID

from ..core.primitives import EngineSettings, Model, round_money, sum_money
from ..gateway import InvoiceFilter, PersistenceGateway

logger = logging.getLogger(__name__)


class CarryForward(Model):
    """Arrears (or credit) carried from the prior year, per component."""

    rent: float = 0.0
    opex: float = 0.0
    heating: float = 0.0
    other: float = 0.0

    @classmethod
    def zero(cls) -> "CarryForward":
        return cls()

    @property
    def total(self) -> float:
        return sum_money((self.rent, self.opex, self.heating, self.other))


def carry_forward_from_totals(
    owed_rent: float, owed_opex: float, owed_heating: float, paid_total: float
) -> CarryForward:
    """
    Derive the carry-forward from yearly billed totals and the amount paid.

    Args:
        owed_rent: Rent billed over the year
        owed_opex: Operating-cost advances billed over the year
        owed_heating: Heating-cost advances billed over the year
        paid_total: Sum of all payments booked in the year

    Returns:
        CarryForward rounded to cents; ``other`` is always zero here

    Example:
        >>> carry_forward_from_totals(650, 100, 80, 150)
        CarryForward(rent=650.0, opex=0.0, heating=30.0, other=0.0)
    """
    owed_total = sum_money((owed_rent, owed_opex, owed_heating))
    shortfall = round_money(owed_total - paid_total)

    if shortfall <= 0:
        # Overpayment is a credit on rent
        return CarryForward(rent=shortfall if shortfall < 0 else 0.0)

    remaining = paid_total
    paid_opex = min(remaining, owed_opex)
    remaining -= paid_opex
    paid_heating = min(remaining, owed_heating)
    remaining -= paid_heating
    paid_rent = min(remaining, owed_rent)

    return CarryForward(
        rent=round_money(max(0.0, owed_rent - paid_rent)),
        opex=round_money(max(0.0, owed_opex - paid_opex)),
        heating=round_money(max(0.0, owed_heating - paid_heating)),
        other=0.0,
    )


class CarryForwardCalculator:
    """Computes a tenant's carry-forward into ``year`` from persisted invoices and payments."""

    def __init__(self, gateway: PersistenceGateway, settings: Optional[EngineSettings] = None):
        self.gateway = gateway
        self.settings = settings or EngineSettings()

    def calculate(self, tenant_id: UUID, year: int) -> CarryForward:
        previous_year = year - 1
        invoices = self.gateway.list_invoices(
            InvoiceFilter(tenant_id=tenant_id, year=previous_year)
        )
        payments = self.gateway.list_payments_in_range(
            tenant_id,
            datetime.date(previous_year, 1, 1),
            datetime.date(previous_year, 12, 31),
        )

        owed_rent = sum_money(inv.rent for inv in invoices)
        owed_opex = sum_money(inv.opex for inv in invoices)
        owed_heating = sum_money(inv.heating for inv in invoices)
        paid_total = sum_money(p.amount for p in payments)

        result = carry_forward_from_totals(owed_rent, owed_opex, owed_heating, paid_total)
        logger.debug(
            f"Carry-forward {previous_year}->{year} for tenant {tenant_id}: "
            f"billed {owed_rent + owed_opex + owed_heating:,.2f}, paid {paid_total:,.2f}, "
            f"carried {result.total:,.2f}"
        )
        return result
