# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Billing

Prior-year carry-forward, monthly invoice generation, invoice disclosure
lines and tenant account summaries.
"""

from .carry_forward import CarryForward, CarryForwardCalculator, carry_forward_from_totals
from .invoices import GenerationResult, InvoiceGenerator, build_invoice
from .lines import build_invoice_lines
from .summary import TenantYearSummary, open_items_frame, summarize_tenant_year

__all__ = [
    "CarryForward",
    "CarryForwardCalculator",
    "GenerationResult",
    "InvoiceGenerator",
    "TenantYearSummary",
    "build_invoice",
    "build_invoice_lines",
    "carry_forward_from_totals",
    "open_items_frame",
    "summarize_tenant_year",
]
