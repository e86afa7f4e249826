# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Index-linked (VPI) rent adjustments.

Detection and application are separate operations. ``detect`` is read-only
and returns proposals; ``apply`` is the only mutating path and is meant to
run after an operator has confirmed a proposal. Applying writes an
immutable ``VpiAdjustment`` audit record and a ``RentHistoryEntry`` and
moves the tenant's rent and index baseline to the new values, all in one
transaction.

A tenant qualifies when the index has risen by at least the threshold since
the tenant's baseline and the tenant has not already been adjusted for the
current publication period.
"""

from __future__ import annotations

import datetime
import logging
from typing import Iterable, List, Optional, Union
from uuid import UUID

from dateutil.relativedelta import relativedelta
from pydantic import Field

from ..core.errors import BatchIssue, InvariantViolation, RentbookError
from ..core.primitives import AdjustmentStatusEnum, EngineSettings, Model, round_money
from ..core.records import RentHistoryEntry, Tenant, VpiAdjustment
from ..gateway import PersistenceGateway
from .series import IndexValue, PriceIndexSeries

logger = logging.getLogger(__name__)


class IndexAdjustmentProposal(Model):
    """A detected, not yet applied, index-based rent increase."""

    tenant_id: UUID
    tenant_name: str
    current_rent: float
    new_rent: float
    percentage_increase: float = Field(..., description="Index increase as a decimal.")
    base_index: float
    current_index: float
    index_year: int
    index_month: int
    effective_date: datetime.date

    @property
    def index_period_start(self) -> datetime.date:
        return datetime.date(self.index_year, self.index_month, 1)


class IndexApplicationResult(Model):
    """Outcome of applying a batch of proposals."""

    applied: List[VpiAdjustment] = Field(default_factory=list)
    failed: List[BatchIssue] = Field(default_factory=list)


def effective_date_after(today: datetime.date) -> datetime.date:
    """First day of the month following ``today``."""
    return (today + relativedelta(months=1)).replace(day=1)


class IndexAdjustmentEngine:
    """Detects and applies index-linked rent increases for a scope."""

    def __init__(self, gateway: PersistenceGateway, settings: Optional[EngineSettings] = None):
        self.gateway = gateway
        self.settings = settings or EngineSettings()

    def percentage_increase(self, baseline: float, current: float) -> float:
        if baseline <= 0:
            raise ValueError(f"Index baseline must be positive, got {baseline}")
        return (current - baseline) / baseline

    def evaluate(
        self, tenant: Tenant, index: IndexValue, today: datetime.date
    ) -> Optional[IndexAdjustmentProposal]:
        """Proposal for one tenant, or None. Pure."""
        baseline = tenant.index_baseline or self.settings.index.default_baseline
        increase = self.percentage_increase(baseline, index.value)
        # Compared at 10 decimals; an exact threshold hit qualifies
        if round(increase, 10) < self.settings.index.threshold:
            return None
        if (
            tenant.last_index_adjustment is not None
            and tenant.last_index_adjustment >= index.period_start
        ):
            logger.debug(
                f"Tenant {tenant.id} already adjusted for {index.month:02d}/{index.year}"
            )
            return None

        current_rent = round_money(tenant.rent or 0.0)
        return IndexAdjustmentProposal(
            tenant_id=tenant.id,
            tenant_name=tenant.display_name,
            current_rent=current_rent,
            new_rent=round_money(current_rent * (1 + increase)),
            percentage_increase=increase,
            base_index=baseline,
            current_index=index.value,
            index_year=index.year,
            index_month=index.month,
            effective_date=effective_date_after(today),
        )

    def detect(
        self,
        scope_id: UUID,
        index: Union[PriceIndexSeries, IndexValue],
        today: Optional[datetime.date] = None,
    ) -> List[IndexAdjustmentProposal]:
        """
        Proposals for all active tenants of the scope. Read-only.

        Args:
            scope_id: Manager scope to scan
            index: Series (its latest value is used) or a single published value
            today: Detection date; drives the proposed effective date
        """
        today = today or datetime.date.today()
        current = index.latest() if isinstance(index, PriceIndexSeries) else index
        if current is None:
            logger.warning("No published index value available; nothing to detect")
            return []

        proposals = []
        for tenant in self.gateway.list_active_tenants(scope_id):
            proposal = self.evaluate(tenant, current, today)
            if proposal is not None:
                proposals.append(proposal)
        logger.info(
            f"Index check for scope {scope_id} at {current.value}: "
            f"{len(proposals)} adjustments proposed"
        )
        return proposals

    def apply(
        self,
        proposal: IndexAdjustmentProposal,
        applied_at: Optional[datetime.datetime] = None,
    ) -> VpiAdjustment:
        """
        Apply a confirmed proposal.

        Raises:
            RecordNotFoundError: If the tenant no longer exists
            InvariantViolation: If the tenant's rent changed since detection or
                the tenant was already adjusted for the proposal's index period
        """
        applied_at = applied_at or datetime.datetime.now(datetime.timezone.utc)
        with self.gateway.transaction():
            tenant = self.gateway.get_tenant(proposal.tenant_id)
            rent = round_money(tenant.rent or 0.0)
            if rent != proposal.current_rent:
                raise InvariantViolation(
                    f"Rent of tenant {tenant.id} changed since detection "
                    f"({proposal.current_rent:.2f} -> {rent:.2f})",
                    record_id=tenant.id,
                )
            if (
                tenant.last_index_adjustment is not None
                and tenant.last_index_adjustment >= proposal.index_period_start
            ):
                raise InvariantViolation(
                    f"Tenant {tenant.id} already adjusted for "
                    f"{proposal.index_month:02d}/{proposal.index_year}",
                    record_id=tenant.id,
                )

            change = (proposal.new_rent - rent) / rent * 100 if rent > 0 else 0.0
            adjustment = VpiAdjustment(
                tenant_id=tenant.id,
                base_index=proposal.base_index,
                current_index=proposal.current_index,
                old_rent=rent,
                new_rent=proposal.new_rent,
                percentage_change=round(change, 4),
                effective_date=proposal.effective_date,
                status=AdjustmentStatusEnum.APPLIED,
                applied_at=applied_at,
            )
            self.gateway.create_audit_record(adjustment)
            self.gateway.create_audit_record(
                RentHistoryEntry(
                    tenant_id=tenant.id,
                    rent=proposal.new_rent,
                    opex_advance=tenant.opex_advance or 0.0,
                    heating_advance=tenant.heating_advance or 0.0,
                    valid_from=proposal.effective_date,
                    reason=f"Index adjustment: {change:+.2f}%",
                )
            )
            self.gateway.update_tenant(
                tenant.id,
                {
                    "rent": proposal.new_rent,
                    "index_baseline": proposal.current_index,
                    "last_index_adjustment": proposal.effective_date,
                },
            )

        logger.info(
            f"Tenant {tenant.id}: rent {rent:,.2f} -> {proposal.new_rent:,.2f} "
            f"effective {proposal.effective_date}"
        )
        return adjustment

    def apply_many(
        self, proposals: Iterable[IndexAdjustmentProposal]
    ) -> IndexApplicationResult:
        """Apply proposals independently; failures are collected per tenant."""
        applied: List[VpiAdjustment] = []
        failed: List[BatchIssue] = []
        for proposal in proposals:
            try:
                applied.append(self.apply(proposal))
            except RentbookError as e:
                logger.warning(
                    f"Index adjustment for {proposal.tenant_id} not applied: {e.message}"
                )
                failed.append(BatchIssue.from_error(e, record_id=proposal.tenant_id))
        return IndexApplicationResult(applied=applied, failed=failed)
