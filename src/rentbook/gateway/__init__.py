# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Rentbook Gateways

Persistence and notification collaborator interfaces plus in-memory
reference implementations.
"""

from .base import (
    AuditRecord,
    InvoiceFilter,
    NotificationGateway,
    NotificationReceipt,
    PersistenceGateway,
)
from .memory import InMemoryGateway, apply_patch, coerce_record
from .notifications import RecordingNotifier

__all__ = [
    "AuditRecord",
    "InMemoryGateway",
    "InvoiceFilter",
    "NotificationGateway",
    "NotificationReceipt",
    "PersistenceGateway",
    "RecordingNotifier",
    "apply_patch",
    "coerce_record",
]
