# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Periodic invoice generation.

One invoice per active tenant per (year, month). Runs are idempotent:
tenants that already have an invoice for the period are skipped, so
re-running a billed period creates nothing. January runs add the prior
year's carry-forward to each invoice.

Component amounts are gross. VAT is extracted from them for disclosure and
is never added on top; the total is the sum of the gross components and the
carry-forward components.
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

import pandas as pd
from pydantic import Field, ValidationError

from ..core.errors import (
    BatchIssue,
    InvariantViolation,
    RecordValidationError,
    RentbookError,
)
from ..core.primitives import (
    EngineSettings,
    Model,
    UnitUsageEnum,
    VatSettings,
    applicable_vat_rates,
    round_money,
    sum_money,
    vat_from_gross,
)
from ..core.records import MonthlyInvoice, Tenant
from ..gateway import InvoiceFilter, PersistenceGateway
from .carry_forward import CarryForward, CarryForwardCalculator
from .lines import build_invoice_lines

logger = logging.getLogger(__name__)


class GenerationResult(Model):
    """Outcome of one invoice generation run."""

    year: int
    month: int
    created: int = 0
    skipped: int = 0
    carry_forwards_calculated: int = 0
    invoices: List[MonthlyInvoice] = Field(default_factory=list)
    failed: List[BatchIssue] = Field(default_factory=list)

    @property
    def hard_failures(self) -> List[BatchIssue]:
        return [issue for issue in self.failed if issue.hard]

    def to_dataframe(self) -> pd.DataFrame:
        """Created invoices as a DataFrame, one row per invoice."""
        columns = [
            "invoice_id",
            "tenant_id",
            "rent",
            "opex",
            "heating",
            "vat_total",
            "carry_forward_total",
            "total_amount",
            "due_date",
        ]
        rows = [
            {
                "invoice_id": inv.id,
                "tenant_id": inv.tenant_id,
                "rent": inv.rent,
                "opex": inv.opex,
                "heating": inv.heating,
                "vat_total": inv.vat_total,
                "carry_forward_total": inv.carry_forward_total,
                "total_amount": inv.total_amount,
                "due_date": inv.due_date,
            }
            for inv in self.invoices
        ]
        return pd.DataFrame(rows, columns=columns)


def _charge(tenant: Tenant, field: str) -> float:
    value = getattr(tenant, field)
    if value is None:
        logger.warning(f"Tenant {tenant.id} has no {field}; billing 0.00")
        return 0.0
    return round_money(value)


def build_invoice(
    tenant: Tenant,
    usage_type: Optional[UnitUsageEnum],
    year: int,
    month: int,
    due_date: datetime.date,
    carry_forward: Optional[CarryForward] = None,
    vat_settings: Optional[VatSettings] = None,
) -> MonthlyInvoice:
    """
    Compute one tenant's invoice for a period. Pure; nothing is persisted.

    Missing charge fields bill as zero rather than failing the record.
    """
    carry_forward = carry_forward or CarryForward.zero()
    rates = applicable_vat_rates(usage_type, vat_settings)

    rent = _charge(tenant, "rent")
    opex = _charge(tenant, "opex_advance")
    heating = _charge(tenant, "heating_advance")

    vat_rent = round_money(vat_from_gross(rent, rates.rent))
    vat_opex = round_money(vat_from_gross(opex, rates.opex))
    vat_heating = round_money(vat_from_gross(heating, rates.heating))

    total = sum_money(
        (
            rent,
            opex,
            heating,
            carry_forward.rent,
            carry_forward.opex,
            carry_forward.heating,
            carry_forward.other,
        )
    )

    return MonthlyInvoice(
        tenant_id=tenant.id,
        unit_id=tenant.unit_id,
        year=year,
        month=month,
        rent=rent,
        opex=opex,
        heating=heating,
        vat_rate_rent=rates.rent,
        vat_rate_opex=rates.opex,
        vat_rate_heating=rates.heating,
        vat_rent=vat_rent,
        vat_opex=vat_opex,
        vat_heating=vat_heating,
        vat_total=sum_money((vat_rent, vat_opex, vat_heating)),
        carry_forward_rent=round_money(carry_forward.rent),
        carry_forward_opex=round_money(carry_forward.opex),
        carry_forward_heating=round_money(carry_forward.heating),
        carry_forward_other=round_money(carry_forward.other),
        total_amount=total,
        due_date=due_date,
    )


class InvoiceGenerator:
    """
    Generates monthly invoices for the active tenants of a scope.

    Per-record failures (malformed tenant data, vanished units, unit
    invariant violations) are reported in ``GenerationResult.failed`` and
    never abort the run for other tenants.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        settings: Optional[EngineSettings] = None,
        carry_forward_calculator: Optional[CarryForwardCalculator] = None,
    ):
        self.gateway = gateway
        self.settings = settings or EngineSettings()
        self.carry_forward_calculator = carry_forward_calculator or CarryForwardCalculator(
            gateway, self.settings
        )

    def due_date_for(self, year: int, month: int) -> datetime.date:
        return datetime.date(year, month, self.settings.billing.due_day)

    def generate(
        self,
        year: int,
        month: int,
        scope_id: Optional[UUID] = None,
        tenants: Optional[Iterable[Tenant]] = None,
    ) -> GenerationResult:
        """
        Create invoices for ``(year, month)``.

        Args:
            year: Billing year
            month: Billing month (1-12)
            scope_id: Manager scope whose active tenants are billed
            tenants: Explicit candidate tenants; overrides the scope lookup

        Returns:
            GenerationResult with created/skipped counts, the created invoices
            and any per-record failures
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")
        if tenants is None:
            if scope_id is None:
                raise ValueError("Either scope_id or tenants must be provided")
            tenants = self.gateway.list_active_tenants(scope_id)

        failed: List[BatchIssue] = []
        candidates = self._exclude_shared_units(
            [t for t in tenants if t.is_active], failed
        )

        invoiced = {
            inv.tenant_id
            for inv in self.gateway.list_invoices(InvoiceFilter(year=year, month=month))
        }
        to_invoice = [t for t in candidates if t.id not in invoiced]
        skipped = len(candidates) - len(to_invoice)

        if not to_invoice:
            logger.info(
                f"All {len(candidates)} tenants already invoiced for {month:02d}/{year}"
            )
            return GenerationResult(year=year, month=month, skipped=skipped, failed=failed)

        due_date = self.due_date_for(year, month)
        computed: List[MonthlyInvoice] = []
        carry_forwards = 0
        for tenant in to_invoice:
            try:
                carry_forward = None
                if month == 1:
                    carry_forward = self.carry_forward_calculator.calculate(tenant.id, year)
                usage_type = self._usage_type(tenant)
                computed.append(
                    build_invoice(
                        tenant,
                        usage_type,
                        year,
                        month,
                        due_date,
                        carry_forward,
                        self.settings.vat,
                    )
                )
                if carry_forward is not None:
                    carry_forwards += 1
            except ValidationError as e:
                error = RecordValidationError.from_pydantic("invoice", e, record_id=tenant.id)
                logger.warning(f"Skipping tenant {tenant.id}: {error.message}")
                failed.append(BatchIssue.from_error(error))
            except RentbookError as e:
                logger.warning(f"Skipping tenant {tenant.id}: {e.message}")
                failed.append(BatchIssue.from_error(e, record_id=tenant.id))

        created = self._persist(computed, failed)
        if created:
            self.gateway.create_invoice_lines(
                [line for inv in created for line in build_invoice_lines(inv)]
            )

        logger.info(
            f"Invoice run {month:02d}/{year}: created {len(created)}, skipped {skipped}, "
            f"failed {len(failed)}"
        )
        return GenerationResult(
            year=year,
            month=month,
            created=len(created),
            skipped=skipped,
            carry_forwards_calculated=carry_forwards,
            invoices=created,
            failed=failed,
        )

    def _usage_type(self, tenant: Tenant) -> UnitUsageEnum:
        default = self.settings.billing.default_usage_type
        if tenant.unit_id is None:
            logger.warning(f"Tenant {tenant.id} has no unit; assuming {default.value}")
            return default
        unit = self.gateway.get_unit(tenant.unit_id)
        return unit.usage_type or default

    def _exclude_shared_units(
        self, tenants: Sequence[Tenant], failed: List[BatchIssue]
    ) -> List[Tenant]:
        """Drop every tenant whose unit has more than one active tenant."""
        by_unit: Dict[UUID, List[Tenant]] = defaultdict(list)
        for tenant in tenants:
            if tenant.unit_id is not None:
                by_unit[tenant.unit_id].append(tenant)

        conflicted = set()
        for unit_id, occupants in by_unit.items():
            if len(occupants) < 2:
                continue
            logger.error(f"Unit {unit_id} has {len(occupants)} active tenants; not invoicing")
            for tenant in occupants:
                conflicted.add(tenant.id)
                failed.append(
                    BatchIssue.from_error(
                        InvariantViolation(
                            f"Unit {unit_id} has {len(occupants)} active tenants",
                            record_id=tenant.id,
                        )
                    )
                )
        return [t for t in tenants if t.id not in conflicted]

    def _persist(
        self, invoices: List[MonthlyInvoice], failed: List[BatchIssue]
    ) -> List[MonthlyInvoice]:
        """Bulk insert; on a uniqueness conflict, retry one by one to isolate it."""
        if not invoices:
            return []
        try:
            return self.gateway.upsert_invoices(invoices)
        except InvariantViolation:
            logger.warning("Bulk invoice insert conflicted; inserting individually")

        created: List[MonthlyInvoice] = []
        for invoice in invoices:
            try:
                created.extend(self.gateway.upsert_invoices([invoice]))
            except InvariantViolation as e:
                logger.error(f"Not invoicing tenant {invoice.tenant_id}: {e.message}")
                failed.append(BatchIssue.from_error(e, record_id=invoice.tenant_id))
        return created
