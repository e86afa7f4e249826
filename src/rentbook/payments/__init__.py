# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Payments

Waterfall allocation of incoming payments across invoice components and
open invoices, and amount-based matching of unreferenced receipts.
"""

from .allocation import (
    InvoiceAllocation,
    PaymentAllocator,
    PaymentApplication,
    PaymentPostingResult,
    PaymentSplit,
    allocate_payment,
    next_status,
    remaining_components,
)
from .matching import MatchedAllocation, MatchOutcome, MatchSuggestion, match_payment

__all__ = [
    "InvoiceAllocation",
    "MatchOutcome",
    "MatchSuggestion",
    "MatchedAllocation",
    "PaymentAllocator",
    "PaymentApplication",
    "PaymentPostingResult",
    "PaymentSplit",
    "allocate_payment",
    "match_payment",
    "next_status",
    "remaining_components",
]
