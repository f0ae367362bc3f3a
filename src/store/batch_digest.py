"""Packet file digest computation.

This module computes the integrity digest bound into batch headers.
Signing services plug in through the same one-method interface.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol

from core.constants import DIGEST_ALGORITHM
from core.types import PrioIngestionHeader


class DigestComputer(Protocol):
    """Deterministic digest over a serialized packet file."""

    def digest(self, data: bytes) -> bytes:
        """Return the digest of data."""
        ...


class Sha256DigestComputer:
    """Default digest computer using hashlib."""

    def digest(self, data: bytes) -> bytes:
        """Return the SHA-256 digest of data."""
        hasher = hashlib.new(DIGEST_ALGORITHM)
        hasher.update(data)
        return hasher.digest()


def verify_packet_file(
    packet_file_bytes: bytes,
    header: PrioIngestionHeader,
    digest_computer: DigestComputer | None = None,
) -> bool:
    """Return whether a header's digest matches its packet file.

    Args:
        packet_file_bytes: Full serialized packet file.
        header: Header read from the companion header file.
        digest_computer: Digest implementation, SHA-256 when omitted.

    Returns:
        True when the recorded digest verifies.
    """
    computer = digest_computer or Sha256DigestComputer()
    return hmac.compare_digest(computer.digest(packet_file_bytes), header.packet_file_digest)
