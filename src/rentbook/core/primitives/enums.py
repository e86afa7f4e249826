# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from enum import Enum


class LeaseStatusEnum(str, Enum):
    """Lease status of a tenant. At most one ACTIVE tenant per unit."""

    ACTIVE = "active"
    ENDED = "ended"


class UnitUsageEnum(str, Enum):
    """
    Usage type of a rentable unit.

    Drives the VAT rate lookup for rent and operating costs. The first four
    members are residential; the rest are commercial usage types under the
    default VAT rules.
    """

    RESIDENTIAL = "residential"
    APARTMENT = "apartment"
    HOUSE = "house"
    OTHER = "other"

    BUSINESS = "business"
    GARAGE = "garage"
    PARKING = "parking"
    STORAGE = "storage"


class InvoiceStatusEnum(str, Enum):
    """Payment status of a monthly invoice."""

    OPEN = "open"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"

    @classmethod
    def outstanding(cls) -> tuple["InvoiceStatusEnum", ...]:
        """Statuses that still carry a balance."""
        return (cls.OPEN, cls.PARTIALLY_PAID, cls.OVERDUE)


class ChargeComponentEnum(str, Enum):
    """
    Charge components of an invoice.

    Declaration order is NOT the allocation order; waterfall priority is
    defined by ``ALLOCATION_ORDER``.
    """

    RENT = "rent"
    OPEX = "opex"
    HEATING = "heating"
    OTHER = "other"


# Historical payments are deemed to settle utility pass-throughs before rent
ALLOCATION_ORDER: tuple[ChargeComponentEnum, ...] = (
    ChargeComponentEnum.OPEX,
    ChargeComponentEnum.HEATING,
    ChargeComponentEnum.RENT,
    ChargeComponentEnum.OTHER,
)


class AdjustmentStatusEnum(str, Enum):
    """Lifecycle status of an index-based rent adjustment record."""

    PROPOSED = "proposed"
    APPLIED = "applied"


class IssueKindEnum(str, Enum):
    """Classification of a per-record failure aggregated into a batch result."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    EXTERNAL_DEPENDENCY = "external_dependency"
    INVARIANT_VIOLATION = "invariant_violation"
