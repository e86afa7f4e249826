# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from typing import List, Tuple
from uuid import uuid4

from .base import NotificationGateway, NotificationReceipt

logger = logging.getLogger(__name__)


class RecordingNotifier(NotificationGateway):
    """Notification gateway that keeps sent messages in memory instead of dispatching them."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []

    def send_notification(self, to: str, subject: str, body: str) -> NotificationReceipt:
        self.sent.append((to, subject, body))
        message_id = uuid4().hex
        logger.debug(f"Recorded notification {message_id} to {to}: {subject}")
        return NotificationReceipt(ok=True, id=message_id)
