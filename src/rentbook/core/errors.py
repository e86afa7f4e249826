# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Error taxonomy for the billing and arrears engines.

Batch operations never let these escape: each per-record failure is caught,
classified and aggregated as a ``BatchIssue`` so callers keep the outcomes
of the records that succeeded. Only ``InvariantViolation`` is a hard error.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from .primitives import IssueKindEnum, Model


class RentbookError(Exception):
    """Base class for engine errors, optionally tied to one record."""

    kind: IssueKindEnum = IssueKindEnum.VALIDATION

    def __init__(self, message: str, record_id: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.record_id = record_id


class RecordValidationError(RentbookError):
    """Malformed or missing required tenant, unit or invoice data."""

    kind = IssueKindEnum.VALIDATION

    @classmethod
    def from_pydantic(
        cls, entity: str, error: ValidationError, record_id: Optional[Any] = None
    ) -> "RecordValidationError":
        fields = sorted({".".join(str(p) for p in e["loc"]) or "<root>" for e in error.errors()})
        return cls(f"Invalid {entity} record: {', '.join(fields)}", record_id=record_id)


class RecordNotFoundError(RentbookError):
    """A referenced tenant, invoice or unit no longer exists."""

    kind = IssueKindEnum.NOT_FOUND


class ExternalDependencyError(RentbookError):
    """A collaborator outside the persistence layer (e.g. notifications) failed."""

    kind = IssueKindEnum.EXTERNAL_DEPENDENCY


class InvariantViolation(RentbookError):
    """Processing this record would corrupt arrears math (e.g. two active tenants on one unit)."""

    kind = IssueKindEnum.INVARIANT_VIOLATION


class BatchIssue(Model):
    """One per-record failure collected into a batch result."""

    record_id: Optional[str] = None
    kind: IssueKindEnum
    message: str
    hard: bool = False

    @classmethod
    def from_error(cls, error: RentbookError, record_id: Optional[Any] = None) -> "BatchIssue":
        rid = record_id if record_id is not None else error.record_id
        return cls(
            record_id=str(rid) if rid is not None else None,
            kind=error.kind,
            message=error.message,
            hard=isinstance(error, InvariantViolation),
        )
