# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Rentbook - Billing & Arrears Engine for Property Management Back Offices

Periodic tenant invoicing with cross-year arrears carry-forward, payment
waterfall allocation, dunning escalation with statutory interest, and
index-linked (VPI) rent adjustments.

Key Entry Points:
- rentbook.billing.InvoiceGenerator - Monthly invoice runs (idempotent per period)
- rentbook.payments.PaymentAllocator - Waterfall allocation of incoming payments
- rentbook.dunning.DunningEngine - Collections escalation for overdue invoices
- rentbook.indexation.IndexAdjustmentEngine - Detect/apply VPI rent increases
- rentbook.gateway.InMemoryGateway - Reference persistence collaborator

Example Usage:
    ```python
    from rentbook.billing import InvoiceGenerator
    from rentbook.gateway import InMemoryGateway

    gateway = InMemoryGateway()
    gateway.add_unit({"id": unit_id, "scope_id": scope_id, "usage_type": "residential"})
    gateway.add_tenant({"id": tenant_id, "unit_id": unit_id, "rent": 650.0})

    result = InvoiceGenerator(gateway).generate(year=2025, month=1, scope_id=scope_id)
    print(f"Created {result.created}, skipped {result.skipped}")
    ```
"""

import importlib
import logging

# Applications configure handlers
logging.getLogger(__name__).addHandler(logging.NullHandler())


# Public API surface (lazy-loaded on first attribute access)
__all__ = [  # noqa: F822 - lazy loading
    "billing",
    "core",
    "dunning",
    "gateway",
    "indexation",
    "payments",
]


_LAZY_MODULES = {
    "billing": "rentbook.billing",
    "core": "rentbook.core",
    "dunning": "rentbook.dunning",
    "gateway": "rentbook.gateway",
    "indexation": "rentbook.indexation",
    "payments": "rentbook.payments",
}


def __getattr__(name: str):
    module_path = _LAZY_MODULES.get(name)
    if module_path is None:
        raise AttributeError(f"module 'rentbook' has no attribute '{name}'")
    module = importlib.import_module(module_path)
    globals()[name] = module
    return module
