"""Per-recipient packet splitting transform.

This module turns one data share into one packet per aggregation server.
Recipients are matched by position in the encrypted share list.
"""

from __future__ import annotations

from typing import Iterable

from core.errors import ShapeMismatchError
from core.types import DataShare, PrioDataSharePacket


def split_packets(data_share: DataShare) -> list[PrioDataSharePacket]:
    """Split a data share into per-server packets.

    Args:
        data_share: Validated share whose encrypted shares match its metadata.

    Returns:
        One packet per encrypted share, in server order.

    Raises:
        ShapeMismatchError: If the encrypted share count differs from
            the metadata server count.
    """
    _check_share_count(data_share)
    return [
        PrioDataSharePacket(
            encryption_key_id=encrypted_share.encryption_key_id,
            r_pit=data_share.r_pit,
            uuid=data_share.uuid,
            encrypted_payload=encrypted_share.encrypted_payload,
        )
        for encrypted_share in data_share.encrypted_data_shares
    ]


def split_batch(data_shares: Iterable[DataShare]) -> list[PrioDataSharePacket]:
    """Split every share of a batch, keeping input order.

    Any malformed share aborts the whole batch.
    """
    packets: list[PrioDataSharePacket] = []
    for data_share in data_shares:
        packets.extend(split_packets(data_share))
    return packets


def _check_share_count(data_share: DataShare) -> None:
    expected_count = data_share.metadata.number_of_servers
    actual_count = len(data_share.encrypted_data_shares)
    if actual_count != expected_count:
        raise ShapeMismatchError(
            f"Data share {data_share.uuid} at {data_share.path} has {actual_count} "
            f"encrypted shares, metadata declares {expected_count} servers. "
            "The upload is corrupt; the batch cannot be emitted."
        )
