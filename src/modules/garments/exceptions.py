"""Garment registry exceptions.

Structured values: ``context`` carries the token and the orders involved
so the caller can decide what to show the operator.
"""

from __future__ import annotations

from modules.core.exceptions import DomainError


class InvalidToken(DomainError):
    """The scanned token is blank."""

    code = "invalid_token"


class DuplicateScan(DomainError):
    """The token is already counted for this order."""

    code = "duplicate_scan"


class CrossOrderConflict(DomainError):
    """The token belongs to another order; needs explicit confirmation."""

    code = "cross_order_conflict"


class UnknownGarment(DomainError):
    """Processing-phase scan of a token with no garment on this order."""

    code = "unknown_garment"


class GarmentNotFound(DomainError):
    """No garment carries the requested token."""

    code = "garment_not_found"


class GenerationExhausted(DomainError):
    """No unique token could be produced within the attempt limit."""

    code = "generation_exhausted"


class TokenCollision(Exception):
    """A candidate token was taken between the existence check and the write."""

    def __init__(self, token: str) -> None:
        super().__init__(token)
        self.token = token
