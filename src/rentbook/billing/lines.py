# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""Invoice disclosure lines (one per billed or carried component)."""

from __future__ import annotations

import calendar
from typing import List

from ..core.primitives import ChargeComponentEnum, net_from_gross, round_money
from ..core.records import InvoiceLine, MonthlyInvoice

CHARGE_LABELS = {
    ChargeComponentEnum.RENT: "Net rent",
    ChargeComponentEnum.OPEX: "Operating-cost advance",
    ChargeComponentEnum.HEATING: "Heating-cost advance",
    ChargeComponentEnum.OTHER: "Other charges",
}

# Statutory basis printed on each charge line
CHARGE_REFERENCES = {
    ChargeComponentEnum.RENT: "MRG §15",
    ChargeComponentEnum.OPEX: "MRG §21",
    ChargeComponentEnum.HEATING: "HeizKG",
}


def build_invoice_lines(invoice: MonthlyInvoice) -> List[InvoiceLine]:
    """
    Break an invoice into disclosure lines.

    Positive charge components get a line with their VAT rate and extracted
    net amount. Non-zero carry-forward components get an untaxed line each,
    credits included.
    """
    period = f"{calendar.month_name[invoice.month]} {invoice.year}"
    lines: List[InvoiceLine] = []

    charges = (
        (ChargeComponentEnum.RENT, invoice.rent, invoice.vat_rate_rent),
        (ChargeComponentEnum.OPEX, invoice.opex, invoice.vat_rate_opex),
        (ChargeComponentEnum.HEATING, invoice.heating, invoice.vat_rate_heating),
    )
    for component, gross, rate in charges:
        if gross <= 0:
            continue
        lines.append(
            InvoiceLine(
                invoice_id=invoice.id,
                component=component,
                description=f"{CHARGE_LABELS[component]} {period}",
                gross_amount=round_money(gross),
                net_amount=round_money(net_from_gross(gross, rate)),
                vat_rate=rate,
                reference=CHARGE_REFERENCES[component],
            )
        )

    carried = (
        (ChargeComponentEnum.RENT, invoice.carry_forward_rent),
        (ChargeComponentEnum.OPEX, invoice.carry_forward_opex),
        (ChargeComponentEnum.HEATING, invoice.carry_forward_heating),
        (ChargeComponentEnum.OTHER, invoice.carry_forward_other),
    )
    for component, amount in carried:
        if amount == 0:
            continue
        kind = "credit" if amount < 0 else "arrears"
        lines.append(
            InvoiceLine(
                invoice_id=invoice.id,
                component=component,
                description=f"{CHARGE_LABELS[component]} {kind} {invoice.year - 1}",
                gross_amount=round_money(amount),
                net_amount=round_money(amount),
                vat_rate=0.0,
                reference=f"Carry-forward {invoice.year - 1}",
            )
        )
    return lines
