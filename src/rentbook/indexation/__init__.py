# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Indexation

Consumer-price-index series and the two-step (detect, then apply) index
adjustment of tenant rents.
"""

from .engine import (
    IndexAdjustmentEngine,
    IndexAdjustmentProposal,
    IndexApplicationResult,
    effective_date_after,
)
from .series import IndexValue, PriceIndexSeries

__all__ = [
    "IndexAdjustmentEngine",
    "IndexAdjustmentProposal",
    "IndexApplicationResult",
    "IndexValue",
    "PriceIndexSeries",
    "effective_date_after",
]
