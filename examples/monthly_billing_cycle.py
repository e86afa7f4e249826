#!/usr/bin/env python3
# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Monthly Billing Cycle Example

This script walks a small residential and commercial portfolio through one
year end using the in-memory gateway:

1. **Billing**: December invoices, then a January run that carries prior-year
   arrears and credits forward
2. **Payments**: A bank receipt matched by amount and posted through the
   opex -> heating -> rent waterfall
3. **Dunning**: Overdue invoices escalated with fees and statutory interest,
   notices captured by a recording notifier
4. **Indexation**: A published index value triggers rent increase proposals
   that are then applied
"""

import logging
from datetime import date
from uuid import uuid4

from rentbook.billing import InvoiceGenerator, open_items_frame
from rentbook.core.primitives import InvoiceStatusEnum
from rentbook.dunning import DunningEngine
from rentbook.gateway import InMemoryGateway, InvoiceFilter, RecordingNotifier
from rentbook.indexation import IndexAdjustmentEngine, PriceIndexSeries
from rentbook.payments import PaymentAllocator, match_payment


def seed_portfolio(gateway: InMemoryGateway):
    """Create one apartment and one shop with tenants in a single scope."""
    scope_id = uuid4()
    apartment = gateway.add_unit(
        {"id": uuid4(), "scope_id": scope_id, "usage_type": "apartment", "label": "Top 4"}
    )
    shop = gateway.add_unit(
        {"id": uuid4(), "scope_id": scope_id, "usage_type": "business", "label": "Shop 1"}
    )
    resident = gateway.add_tenant(
        {
            "id": uuid4(),
            "unit_id": apartment.id,
            "first_name": "Anna",
            "last_name": "Huber",
            "email": "anna.huber@example.com",
            "rent": 650.0,
            "opex_advance": 100.0,
            "heating_advance": 80.0,
            "index_baseline": 118.2,
        }
    )
    retailer = gateway.add_tenant(
        {
            "id": uuid4(),
            "unit_id": shop.id,
            "first_name": "Karl",
            "last_name": "Berger",
            "email": "office@berger-shop.example.com",
            "rent": 1200.0,
            "opex_advance": 200.0,
            "heating_advance": 100.0,
            "index_baseline": 118.2,
        }
    )
    return scope_id, resident, retailer


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    gateway = InMemoryGateway()
    notifier = RecordingNotifier()
    scope_id, resident, retailer = seed_portfolio(gateway)

    print("=" * 60)
    print("MONTHLY BILLING CYCLE")
    print("=" * 60)

    generator = InvoiceGenerator(gateway)
    december = generator.generate(2024, 12, scope_id=scope_id)
    print(f"✅ December run: {december.created} invoices")

    # Partial payment in December leaves arrears for January
    for tenant, amount, booked in (
        (resident, 150.0, date(2024, 12, 9)),
        (retailer, 1700.0, date(2024, 12, 2)),
    ):
        gateway.add_payment(
            {"id": uuid4(), "tenant_id": tenant.id, "amount": amount, "booking_date": booked}
        )

    january = generator.generate(2025, 1, scope_id=scope_id)
    print(f"✅ January run: {january.created} invoices, {january.skipped} skipped")
    print(january.to_dataframe().to_string(index=False))
    print()

    allocator = PaymentAllocator(gateway)
    open_invoices = gateway.list_invoices(
        InvoiceFilter(tenant_id=resident.id, statuses=InvoiceStatusEnum.outstanding())
    )
    outcome = match_payment(830.0, open_invoices)
    print(f"Match for EUR 830.00: {[m.reason for m in outcome.matched] or 'none'}")

    payment = gateway.add_payment(
        {"id": uuid4(), "tenant_id": resident.id, "amount": 830.0, "booking_date": date(2025, 1, 7)}
    )
    application = allocator.post_payment(payment)
    for allocation in application.allocations:
        consumed = {c.value: amount for c, amount in allocation.split.consumed.items() if amount}
        print(f"   Invoice {allocation.invoice_id}: {consumed} -> {allocation.status_after.value}")
    print()

    dunning = DunningEngine(gateway, notifier)
    result = dunning.process(scope_id, today=date(2025, 2, 20), send_emails=True)
    print(f"✅ Dunning: {result.escalated} escalated, {result.emails_sent} notices sent")
    for action in result.actions:
        print(
            f"   {action.tenant_name}: level {action.current_level} -> {action.new_level} "
            f"({action.level_name}), total due EUR {action.total_due:,.2f}"
        )
    if notifier.sent:
        print()
        print(notifier.sent[0][2])
    print()

    open_items = open_items_frame(
        gateway.list_invoices(InvoiceFilter(scope_id=scope_id)), today=date(2025, 2, 20)
    )
    print(open_items.to_string(index=False))
    print()

    vpi = PriceIndexSeries.from_values([(2024, 12, 122.9), (2025, 1, 124.6)])
    indexation = IndexAdjustmentEngine(gateway)
    proposals = indexation.detect(scope_id, vpi, today=date(2025, 2, 20))
    for proposal in proposals:
        print(
            f"   {proposal.tenant_name}: {proposal.current_rent:,.2f} -> {proposal.new_rent:,.2f} "
            f"(+{proposal.percentage_increase:.2%}, effective {proposal.effective_date})"
        )
    applied = indexation.apply_many(proposals)
    print(f"✅ Index adjustments applied: {len(applied.applied)}")


if __name__ == "__main__":
    main()
