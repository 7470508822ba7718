import random

import pytest

from daoracle.common.errors import MalformedIdentifier
from daoracle.common.ids import (
    FIELD_MASK,
    CompositePublicationId,
    from_display_string,
    pack,
    to_display_string,
    unpack,
)


@pytest.mark.parametrize(
    "batch_id, reference_id",
    [
        (0, 0),
        (0, 1),
        (1, 0),
        (0x46A30696, 1),
        (0xEB395E21, 0x01EF),
        (FIELD_MASK, FIELD_MASK),
        (FIELD_MASK, 0),
        (0, FIELD_MASK),
    ],
)
def test_pack_unpack_edges(batch_id, reference_id):
    assert unpack(pack(batch_id, reference_id)) == (batch_id, reference_id)


def test_pack_unpack_random_pairs_are_bijective():
    rng = random.Random(1337)
    seen = set()
    for _ in range(500):
        batch_id = rng.getrandbits(128)
        reference_id = rng.getrandbits(128)
        packed = pack(batch_id, reference_id)
        assert 0 <= packed < 1 << 256
        assert unpack(packed) == (batch_id, reference_id)
        seen.add(packed)
    assert len(seen) == 500


def test_packed_layout_matches_ledger_ids():
    assert pack(0x46A30696, 1) == (0x46A30696 << 128) | 1
    assert unpack((0xBD1F8159 << 128) | 0x01EF) == (0xBD1F8159, 0x01EF)


def test_unpack_is_total_over_uint256():
    assert unpack(0) == (0, 0)
    assert unpack((1 << 256) - 1) == (FIELD_MASK, FIELD_MASK)
    with pytest.raises(ValueError):
        unpack(1 << 256)
    with pytest.raises(ValueError):
        unpack(-1)


def test_fields_are_range_checked():
    with pytest.raises(ValueError):
        pack(1 << 128, 0)
    with pytest.raises(ValueError):
        CompositePublicationId(0, -1)
    with pytest.raises(TypeError):
        CompositePublicationId("1", 1)


def test_composite_id_helpers():
    pub = CompositePublicationId.from_int((0x46A30696 << 128) | 1)
    assert pub == CompositePublicationId(0x46A30696, 1)
    assert int(pub) == pub.to_int() == (0x46A30696 << 128) | 1
    assert pub.is_da
    assert not CompositePublicationId(0, 7).is_da
    assert str(pub) == "0x01-DA-46a30696"


def test_display_string_matches_oracle_format():
    pub = CompositePublicationId(0xBD1F8159, 0x01EF)
    assert to_display_string(1, pub) == "0x01-0x01ef-DA-bd1f8159"


@pytest.mark.parametrize(
    "profile_id, batch_id, reference_id",
    [(1, 0x46A30696, 1), (0x1234, 0, 0), (FIELD_MASK, FIELD_MASK, FIELD_MASK), (2, 0xA, 0x10)],
)
def test_display_string_round_trip(profile_id, batch_id, reference_id):
    pub = CompositePublicationId(batch_id, reference_id)
    assert from_display_string(to_display_string(profile_id, pub)) == (profile_id, pub)


def test_display_string_parsing_is_lenient_on_case_and_padding():
    assert from_display_string("0x0001-0x01EF-DA-BD1F8159") == (1, CompositePublicationId(0xBD1F8159, 0x01EF))


@pytest.mark.parametrize(
    "value",
    [
        "",
        "0x01-0x01-DA-",
        "01-0x01-DA-46a30696",
        "0x01-0x01-da-46a30696",
        "0x01-0x01-DA-0x46a30696",
        "0xzz-0x01-DA-46a30696",
        "0x01-0x01-DA-46a30696-0x02",
        "0x01_0x01_DA_46a30696",
        "0x1" + "0" * 32 + "-0x01-DA-1",
        "0x01-0x1" + "0" * 32 + "-DA-1",
        "0x01-0x01-DA-1" + "0" * 32,
        " 0x01-0x01-DA-46a30696",
        "0x01-0x01-DA-46a30696\n",
        "\t0x01-0x01-DA-46a30696 ",
        123,
        None,
    ],
)
def test_malformed_display_strings(value):
    with pytest.raises(MalformedIdentifier):
        from_display_string(value)
