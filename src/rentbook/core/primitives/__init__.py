# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Rentbook Core Primitives

Essential building blocks shared by every engine: the immutable base model,
constrained numeric types, enums, configuration structs and money/VAT helpers.
"""

from .enums import (
    ALLOCATION_ORDER,
    AdjustmentStatusEnum,
    ChargeComponentEnum,
    InvoiceStatusEnum,
    IssueKindEnum,
    LeaseStatusEnum,
    UnitUsageEnum,
)
from .model import Model
from .money import (
    VatRates,
    applicable_vat_rates,
    net_from_gross,
    round_money,
    sum_money,
    vat_from_gross,
)
from .settings import (
    DEFAULT_DUNNING_LEVELS,
    BillingSettings,
    DunningLevel,
    DunningSettings,
    EngineSettings,
    IndexSettings,
    VatSettings,
)
from .types import (
    DunningLevelInt,
    FloatBetween0And1,
    MonthInt,
    NonNegativeFloat,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    VatRatePercent,
)

__all__ = [
    "ALLOCATION_ORDER",
    "AdjustmentStatusEnum",
    "BillingSettings",
    "ChargeComponentEnum",
    "DEFAULT_DUNNING_LEVELS",
    "DunningLevel",
    "DunningLevelInt",
    "DunningSettings",
    "EngineSettings",
    "FloatBetween0And1",
    "IndexSettings",
    "InvoiceStatusEnum",
    "IssueKindEnum",
    "LeaseStatusEnum",
    "Model",
    "MonthInt",
    "NonNegativeFloat",
    "NonNegativeInt",
    "PositiveFloat",
    "PositiveInt",
    "UnitUsageEnum",
    "VatRatePercent",
    "VatRates",
    "VatSettings",
    "applicable_vat_rates",
    "net_from_gross",
    "round_money",
    "sum_money",
    "vat_from_gross",
]
