# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Rentbook Core

Primitives, entity records and the error taxonomy shared by all engines.
"""

from . import primitives
from .errors import (
    BatchIssue,
    ExternalDependencyError,
    InvariantViolation,
    RecordNotFoundError,
    RecordValidationError,
    RentbookError,
)
from .records import (
    InvoiceLine,
    MonthlyInvoice,
    Payment,
    PaymentAllocation,
    RentHistoryEntry,
    Tenant,
    Unit,
    VpiAdjustment,
)

__all__ = [
    "BatchIssue",
    "ExternalDependencyError",
    "InvariantViolation",
    "InvoiceLine",
    "MonthlyInvoice",
    "Payment",
    "PaymentAllocation",
    "RecordNotFoundError",
    "RecordValidationError",
    "RentHistoryEntry",
    "RentbookError",
    "Tenant",
    "Unit",
    "VpiAdjustment",
    "primitives",
]
