# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Dunning

Collections escalation of overdue invoices with statutory interest and fees,
plus the notices sent to tenants.
"""

from .engine import DunningAction, DunningEngine, DunningRunResult
from .notices import format_currency, payment_deadline, render_dunning_notice

__all__ = [
    "DunningAction",
    "DunningEngine",
    "DunningRunResult",
    "format_currency",
    "payment_deadline",
    "render_dunning_notice",
]
