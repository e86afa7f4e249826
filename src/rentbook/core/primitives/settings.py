# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import Field, model_validator
from typing_extensions import Self

from .enums import UnitUsageEnum
from .model import Model
from .types import (
    FloatBetween0And1,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    VatRatePercent,
)


class VatSettings(Model):
    """
    VAT lookup table keyed by unit usage type.

    Commercial usage types carry the commercial rate on rent and operating
    costs; every other usage type is residential. Heating has its own rate
    regardless of usage. Defaults reflect the Austrian domestic rules.
    """

    commercial_usage_types: frozenset[UnitUsageEnum] = Field(
        default=frozenset(
            {
                UnitUsageEnum.BUSINESS,
                UnitUsageEnum.GARAGE,
                UnitUsageEnum.PARKING,
                UnitUsageEnum.STORAGE,
            }
        ),
        description="Usage types billed at the commercial rate for rent and opex.",
    )
    commercial_rate: VatRatePercent = Field(
        default=20.0, description="VAT percent on rent/opex for commercial units."
    )
    residential_rate: VatRatePercent = Field(
        default=10.0, description="VAT percent on rent/opex for residential units."
    )
    heating_rate: VatRatePercent = Field(
        default=20.0, description="VAT percent on heating, independent of usage."
    )


class BillingSettings(Model):
    """Settings for periodic invoice generation and payment status."""

    due_day: PositiveInt = Field(
        default=5, le=28, description="Calendar day of the billing month the invoice is due."
    )
    paid_epsilon: NonNegativeFloat = Field(
        default=0.01,
        description="Tolerance within which an invoice counts as fully paid.",
    )
    default_usage_type: UnitUsageEnum = Field(
        default=UnitUsageEnum.RESIDENTIAL,
        description="Usage type assumed when a tenant's unit is missing or untyped.",
    )


class DunningLevel(Model):
    """One row of the dunning escalation table."""

    level: NonNegativeInt = Field(..., le=3)
    name: str
    threshold_days: NonNegativeInt = Field(
        ..., description="Minimum days overdue at which this level applies."
    )
    fee: NonNegativeFloat = 0.0
    interest_rate: FloatBetween0And1 = Field(
        default=0.0, description="Statutory annual interest rate as a decimal."
    )


DEFAULT_DUNNING_LEVELS: Tuple[DunningLevel, ...] = (
    DunningLevel(level=0, name="Open", threshold_days=0),
    DunningLevel(level=1, name="Payment reminder", threshold_days=14),
    DunningLevel(
        level=2, name="First notice", threshold_days=30, fee=5.0, interest_rate=0.04
    ),
    DunningLevel(
        level=3, name="Final notice", threshold_days=45, fee=10.0, interest_rate=0.04
    ),
)


class DunningSettings(Model):
    """
    Dunning escalation table and interest conventions.

    Interest accrues as ``principal * rate * days / days_in_year`` and is
    zero while the invoice is no more than ``interest_free_days`` overdue.
    """

    levels: Tuple[DunningLevel, ...] = Field(default=DEFAULT_DUNNING_LEVELS)
    interest_free_days: NonNegativeInt = 14
    days_in_year: PositiveInt = 365
    payment_window_days: PositiveInt = Field(
        default=14, description="Deadline offset printed on reminders and first notices."
    )
    final_payment_window_days: PositiveInt = Field(
        default=7, description="Deadline offset printed on the final notice."
    )

    @model_validator(mode="after")
    def check_level_table(self) -> Self:
        """Levels must start at 0/0 and strictly increase in level and threshold."""
        if not self.levels:
            raise ValueError("dunning level table must not be empty")
        first = self.levels[0]
        if first.level != 0 or first.threshold_days != 0:
            raise ValueError("dunning level table must start with level 0 at 0 days")
        for previous, current in zip(self.levels, self.levels[1:]):
            if current.level <= previous.level:
                raise ValueError("dunning levels must be strictly increasing")
            if current.threshold_days <= previous.threshold_days:
                raise ValueError("dunning thresholds must be strictly increasing")
        return self

    def level_for(self, days_overdue: int) -> DunningLevel:
        """Highest level whose threshold is satisfied by ``days_overdue``."""
        for entry in reversed(self.levels):
            if days_overdue >= entry.threshold_days:
                return entry
        return self.levels[0]

    def get_level(self, level: int) -> Optional[DunningLevel]:
        return next((entry for entry in self.levels if entry.level == level), None)


class IndexSettings(Model):
    """Settings for index-linked (VPI) rent adjustments."""

    threshold: FloatBetween0And1 = Field(
        default=0.05,
        description="Minimum relative index increase since baseline that triggers an adjustment.",
    )
    default_baseline: PositiveFloat = Field(
        default=100.0,
        description="Baseline index value assumed when a tenant has none stored.",
    )


class EngineSettings(Model):
    """Engine settings

    Groups the jurisdiction-specific tables consumed by the billing, payment,
    dunning and indexation engines. Each engine receives this object at
    construction; omitted groups fall back to their defaults.
    """

    vat: VatSettings = Field(default_factory=VatSettings)
    billing: BillingSettings = Field(default_factory=BillingSettings)
    dunning: DunningSettings = Field(default_factory=DunningSettings)
    index: IndexSettings = Field(default_factory=IndexSettings)
