"""Unit tests for per-recipient packet splitting."""

from __future__ import annotations

import pytest

from core.errors import ShapeMismatchError
from core.types import DataShare, EncryptedShare, PrioDataSharePacket
from tests.data_share_builders import sample_data_share, sample_metadata
from transforms.packet_splitter import split_batch, split_packets


def test_split_packets_fans_out_one_packet_per_server() -> None:
    """Splitting should yield one packet per encrypted share in order."""
    metadata = sample_metadata(number_of_servers=3)
    share = sample_data_share("uuid-1", 5, metadata, payloads=(b"a", b"bb", b""))

    packets = split_packets(share)

    assert [(p.encryption_key_id, p.encrypted_payload) for p in packets] == [
        ("server-0", b"a"),
        ("server-1", b"bb"),
        ("server-2", b""),
    ]


def test_split_packets_copies_share_identity() -> None:
    """Every packet should carry the share's rPit and uuid."""
    share = sample_data_share("uuid-7", created=5)

    packets = split_packets(share)

    assert {(p.r_pit, p.uuid) for p in packets} == {(share.r_pit, "uuid-7")}


def test_split_packets_reference_example() -> None:
    """A one-server share should split into exactly one packet."""
    payload = bytes([0x01, 0x02, 0x03, 0x04, 0x05])
    share = DataShare(
        path="id2",
        created=2,
        r_pit=12345,
        uuid="uuid-id2",
        metadata=sample_metadata(number_of_servers=1),
        encrypted_data_shares=(EncryptedShare("hardCodedID", payload),),
    )

    packets = split_packets(share)

    assert packets == [
        PrioDataSharePacket(
            encryption_key_id="hardCodedID",
            r_pit=12345,
            uuid="uuid-id2",
            encrypted_payload=payload,
        )
    ]


@pytest.mark.parametrize("payloads", [(b"only-one",), (b"a", b"b", b"c")])
def test_split_packets_rejects_share_count_mismatch(payloads: tuple[bytes, ...]) -> None:
    """Encrypted share count must equal the metadata server count."""
    share = sample_data_share("uuid-1", 5, sample_metadata(number_of_servers=2), payloads)

    with pytest.raises(ShapeMismatchError):
        split_packets(share)


def test_split_batch_aborts_on_any_malformed_share() -> None:
    """One malformed share should abort the whole batch split."""
    good_share = sample_data_share("uuid-1", created=1)
    bad_share = sample_data_share("uuid-2", 1, payloads=(b"x",))

    with pytest.raises(ShapeMismatchError):
        split_batch([good_share, bad_share])


def test_split_batch_produces_shares_times_servers_packets() -> None:
    """Packet count should equal shares times servers."""
    shares = [sample_data_share(f"uuid-{index}", created=index) for index in range(4)]

    packets = split_batch(shares)

    assert len(packets) == 4 * shares[0].metadata.number_of_servers
