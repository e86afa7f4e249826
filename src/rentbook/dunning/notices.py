# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Plain-text dunning notices handed to the notification gateway."""

from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Optional, Tuple

from ..core.primitives import DunningLevel, DunningSettings

if TYPE_CHECKING:
    from .engine import DunningAction


def format_currency(amount: float) -> str:
    """Format as EUR with thousands separators, e.g. ``EUR 1,234.50``."""
    return f"EUR {amount:,.2f}"


def payment_deadline(
    level: DunningLevel, today: datetime.date, settings: Optional[DunningSettings] = None
) -> datetime.date:
    settings = settings or DunningSettings()
    final_level = settings.levels[-1].level
    window = (
        settings.final_payment_window_days
        if level.level == final_level
        else settings.payment_window_days
    )
    return today + datetime.timedelta(days=window)


def render_dunning_notice(
    action: "DunningAction",
    level: DunningLevel,
    today: datetime.date,
    settings: Optional[DunningSettings] = None,
) -> Tuple[str, str]:
    """
    Build subject and body for an escalation.

    The reminder level lists only the open amount. Later levels add the fee,
    statutory default interest and total; the last level carries a
    final-demand sentence.
    """
    settings = settings or DunningSettings()
    deadline = payment_deadline(level, today, settings).strftime("%d.%m.%Y")
    subject = f"{level.name} - open balance"

    lines = [
        f"Dear {action.tenant_name},",
        "",
    ]
    if level.level <= 1:
        lines += [
            "this is a friendly reminder that the following amount is still open:",
            "",
            f"Open amount: {format_currency(action.principal)}",
            "",
            f"Please transfer this amount by {deadline}.",
            "If you have already paid, please disregard this reminder.",
        ]
    else:
        lines += [
            "despite our previous reminder we have not yet received your payment.",
            "",
            f"Open amount: {format_currency(action.principal)}",
            f"Dunning fee: {format_currency(action.fee)}",
            f"Default interest: {format_currency(action.interest)}",
            f"Total due: {format_currency(action.total_due)}",
            "",
            f"Please settle the total amount by {deadline}.",
        ]
        if level.level == settings.levels[-1].level:
            lines.append(
                "This is the final notice before we initiate legal collection proceedings."
            )
    lines += ["", "Kind regards,", "Your property management"]
    return subject, "\n".join(lines)
