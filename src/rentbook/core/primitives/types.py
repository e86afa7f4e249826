# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Constrained numeric types shared by records and settings."""

from __future__ import annotations

from typing import Annotated

from pydantic import Field

NonNegativeFloat = Annotated[float, Field(ge=0)]
PositiveFloat = Annotated[float, Field(gt=0)]
FloatBetween0And1 = Annotated[float, Field(ge=0, le=1)]
PositiveInt = Annotated[int, Field(gt=0)]
NonNegativeInt = Annotated[int, Field(ge=0)]
MonthInt = Annotated[int, Field(ge=1, le=12)]
VatRatePercent = Annotated[float, Field(ge=0, le=100)]
DunningLevelInt = Annotated[int, Field(ge=0, le=3)]
