"""Scan token generation.

Tokens look like ``3f2a9c1e-SHIRT-LAUNDERED-1714567890123-k3z9qa-1``::

    <tenant prefix>-<service fragment>-<epoch millis>-<random base36>-<sequence>

The timestamp and sequence alone repeat within one millisecond, so every
candidate carries a random suffix and is still checked against the store
before it is accepted.  The unique index on ``Garment.qr_code`` is the
final arbiter: a ``claim`` that hits it raises ``TokenCollision`` and the
generator simply tries the next candidate.
"""

from __future__ import annotations

import re
import secrets
import string
import time
from typing import Any, Callable, Optional

import structlog

from modules.garments.constants import (
    DEFAULT_SERVICE_FRAGMENT,
    DEFAULT_TENANT_PREFIX,
    DEFAULT_TOKEN_MAX_ATTEMPTS,
    RANDOM_SUFFIX_LENGTH,
    SERVICE_FRAGMENT_MAX_LENGTH,
    TENANT_PREFIX_LENGTH,
)
from modules.garments.exceptions import GenerationExhausted, TokenCollision

logger = structlog.get_logger(__name__)

_ALPHABET = string.digits + string.ascii_lowercase
_NON_TOKEN_CHARS = re.compile(r"[^A-Z0-9]+")


def tenant_prefix(tenant_hint: Optional[str]) -> str:
    prefix = (tenant_hint or "").strip()[:TENANT_PREFIX_LENGTH]
    return prefix or DEFAULT_TENANT_PREFIX


def service_fragment(service_name: Optional[str]) -> str:
    slug = _NON_TOKEN_CHARS.sub("-", (service_name or "").upper()).strip("-")
    slug = slug[:SERVICE_FRAGMENT_MAX_LENGTH].rstrip("-")
    return slug or DEFAULT_SERVICE_FRAGMENT


def random_suffix(length: int = RANDOM_SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class TokenGenerator:
    """Produces scan tokens that are unique across all businesses.

    ``exists`` is the uniqueness oracle (``token -> bool``).  ``generate``
    gives up with ``GenerationExhausted`` after ``max_attempts`` rejected
    candidates.
    """

    def __init__(
        self,
        exists: Callable[[str], bool],
        max_attempts: int = DEFAULT_TOKEN_MAX_ATTEMPTS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._exists = exists
        self._clock = clock
        self.max_attempts = max_attempts

    def candidate(self, tenant_hint: Optional[str], service_name: Optional[str], sequence: int) -> str:
        millis = int(self._clock() * 1000)
        return "-".join(
            (
                tenant_prefix(tenant_hint),
                service_fragment(service_name),
                str(millis),
                random_suffix(),
                str(sequence),
            )
        )

    def generate(
        self,
        tenant_hint: Optional[str],
        service_name: Optional[str],
        sequence: int,
        claim: Optional[Callable[[str], Any]] = None,
    ) -> str:
        """Return a token no garment carries.

        When *claim* is given it is called with the accepted candidate to
        persist it; a ``TokenCollision`` from it means another writer won
        the race and the next candidate is tried.

        Raises:
            GenerationExhausted: every attempt was rejected.
        """
        log = logger.bind(service_name=service_name, sequence=sequence)
        for attempt in range(1, self.max_attempts + 1):
            token = self.candidate(tenant_hint, service_name, sequence)
            if self._exists(token):
                log.warning("token.collision", attempt=attempt, stage="lookup")
                continue
            if claim is not None:
                try:
                    claim(token)
                except TokenCollision:
                    log.warning("token.collision", attempt=attempt, stage="claim")
                    continue
            return token

        log.error("token.generation_exhausted", attempts=self.max_attempts)
        raise GenerationExhausted(
            f"No unique token after {self.max_attempts} attempts.",
            service_name=service_name,
            sequence=sequence,
            attempts=self.max_attempts,
        )
