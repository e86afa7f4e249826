# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Money and VAT utilities.

Every monetary amount that is persisted or reported goes through
``round_money`` (round-half-up to cents). VAT helpers work on gross amounts:
component charges are stored gross and VAT is the extracted portion.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from .enums import UnitUsageEnum
from .model import Model
from .settings import VatSettings

CENT = Decimal("0.01")

_DEFAULT_VAT_SETTINGS = VatSettings()


def round_money(amount: Union[float, int, Decimal, None]) -> float:
    """
    Round to two decimals using round-half-up.

    Goes through ``Decimal(str(amount))`` so that binary float artefacts
    (e.g. ``2.675`` stored as ``2.67499...``) round the way a human expects.

    Example:
        >>> round_money(2.675)
        2.68
        >>> round_money(-0.005)
        -0.01
    """
    if amount is None:
        return 0.0
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return float(value.quantize(CENT, rounding=ROUND_HALF_UP))


def sum_money(amounts: Iterable[Union[float, int, None]]) -> float:
    """Sum amounts and round the total once."""
    total = sum((Decimal(str(a)) for a in amounts if a is not None), Decimal("0"))
    return round_money(total)


def vat_from_gross(gross_amount: float, rate_percent: float) -> float:
    """
    VAT portion contained in a gross amount.

    Returns ``gross - gross / (1 + rate/100)``, unrounded; callers round at
    the point of persistence.

    Args:
        gross_amount: Gross amount including VAT
        rate_percent: VAT rate in percent (e.g. 20 for 20%)

    Raises:
        ValueError: If the rate is negative
    """
    if rate_percent < 0:
        raise ValueError(f"VAT rate must be non-negative, got {rate_percent}")
    if rate_percent == 0:
        return 0.0
    return gross_amount - gross_amount / (1 + rate_percent / 100)


def net_from_gross(gross_amount: float, rate_percent: float) -> float:
    """Net portion of a gross amount (unrounded)."""
    return gross_amount - vat_from_gross(gross_amount, rate_percent)


class VatRates(Model):
    """Applicable VAT percentages per charge component."""

    rent: float
    opex: float
    heating: float


def applicable_vat_rates(
    usage_type: Union[UnitUsageEnum, str, None],
    settings: Optional[VatSettings] = None,
) -> VatRates:
    """
    VAT rates for a unit usage type.

    Unknown or missing usage types are treated as residential.
    """
    settings = settings or _DEFAULT_VAT_SETTINGS
    if isinstance(usage_type, UnitUsageEnum):
        usage = usage_type
    else:
        try:
            usage = UnitUsageEnum(usage_type.lower()) if usage_type else None
        except ValueError:
            usage = None
    is_commercial = usage in settings.commercial_usage_types
    base_rate = settings.commercial_rate if is_commercial else settings.residential_rate
    return VatRates(rent=base_rate, opex=base_rate, heating=settings.heating_rate)
