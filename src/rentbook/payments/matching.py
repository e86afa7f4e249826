# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Matching unreferenced bank receipts to open invoices by amount.

Rules, in order:
1. Exact match (within one cent) against a single invoice's outstanding
   balance, oldest invoice first.
2. Near match (within ``near_tolerance``) against single invoices is only
   suggested, never applied.
3. Exact match against the sum of all outstanding balances settles every
   open invoice.
"""

from __future__ import annotations

from typing import List, Sequence
from uuid import UUID

from pydantic import Field

from ..core.primitives import Model, round_money, sum_money
from ..core.records import MonthlyInvoice

EXACT_TOLERANCE = 0.01
NEAR_TOLERANCE = 1.0
NEAR_MATCH_CONFIDENCE = 80


class MatchedAllocation(Model):
    invoice_id: UUID
    amount: float
    reason: str


class MatchSuggestion(Model):
    invoice_id: UUID
    amount: float
    confidence: int
    reason: str


class MatchOutcome(Model):
    """Result of matching one payment amount."""

    amount: float
    matched: List[MatchedAllocation] = Field(default_factory=list)
    suggestions: List[MatchSuggestion] = Field(default_factory=list)

    @property
    def is_matched(self) -> bool:
        return bool(self.matched)


def match_payment(
    amount: float,
    open_invoices: Sequence[MonthlyInvoice],
    near_tolerance: float = NEAR_TOLERANCE,
) -> MatchOutcome:
    """Match a payment amount against a tenant's open invoices."""
    amount = round_money(amount)
    candidates = sorted(
        (inv for inv in open_invoices if inv.outstanding > 0),
        key=lambda inv: (inv.year, inv.month, inv.due_date),
    )

    suggestions: List[MatchSuggestion] = []
    for invoice in candidates:
        difference = abs(amount - invoice.outstanding)
        if difference < EXACT_TOLERANCE:
            return MatchOutcome(
                amount=amount,
                matched=[
                    MatchedAllocation(
                        invoice_id=invoice.id, amount=amount, reason="Exact amount match"
                    )
                ],
            )
        if difference < near_tolerance:
            suggestions.append(
                MatchSuggestion(
                    invoice_id=invoice.id,
                    amount=invoice.outstanding,
                    confidence=NEAR_MATCH_CONFIDENCE,
                    reason=f"Amount nearly identical (difference {round_money(difference):.2f})",
                )
            )

    if suggestions:
        return MatchOutcome(amount=amount, suggestions=suggestions)

    total_due = sum_money(inv.outstanding for inv in candidates)
    if total_due > 0 and abs(amount - total_due) < EXACT_TOLERANCE:
        return MatchOutcome(
            amount=amount,
            matched=[
                MatchedAllocation(
                    invoice_id=inv.id,
                    amount=inv.outstanding,
                    reason="Sum of all open invoices matches",
                )
                for inv in candidates
            ],
        )

    return MatchOutcome(amount=amount)
