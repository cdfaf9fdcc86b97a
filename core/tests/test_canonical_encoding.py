import cbor2
import pytest

from core.encoding.canonical import (
    FIELD_MODULUS,
    TAG_PUBKEY,
    TAG_RECORD,
    TAG_UINT,
    Bool,
    Field,
    FixedBytes,
    Int,
    PublicKey,
    Record,
    UInt,
    dumps,
    resolve_codec,
)
from core.errors import ConfigError, EncodingError
from zk.verifiers import Proof


def test_uint_item_is_tagged_with_width():
    item = cbor2.loads(UInt(64).encode(7))
    assert isinstance(item, cbor2.CBORTag)
    assert item.tag == TAG_UINT
    assert list(item.value) == [64, 7]


def test_same_number_different_types_encode_differently():
    encodings = {
        UInt(64).encode(1),
        UInt(32).encode(1),
        Int(64).encode(1),
        Field().encode(1),
    }
    assert len(encodings) == 4


def test_records_with_same_layout_do_not_collide():
    a = Record("Point", [("x", UInt(64)), ("y", UInt(64))])
    b = Record("Size", [("x", UInt(64)), ("y", UInt(64))])
    value = {"x": 3, "y": 4}
    assert a.encode(value) != b.encode(value)
    item = cbor2.loads(a.encode(value))
    assert item.tag == TAG_RECORD
    assert item.value[0] == "Point"


def test_array_payloads_decode_as_list_or_tuple():
    u = UInt(64)
    assert u.from_cbor(cbor2.CBORTag(TAG_UINT, (64, 5))) == 5
    assert u.from_cbor(cbor2.CBORTag(TAG_UINT, [64, 5])) == 5
    assert Int(32).from_cbor(cbor2.CBORTag(Int(32).tag, (32, -3))) == -3

    rec = Record("Point", [("x", UInt(64)), ("y", UInt(64))])
    payload = ("Point", (u.to_cbor(1), u.to_cbor(2)))
    assert rec.from_cbor(cbor2.CBORTag(TAG_RECORD, payload)) == {"x": 1, "y": 2}
    with pytest.raises(EncodingError):
        u.from_cbor(cbor2.CBORTag(TAG_UINT, (32, 5)))


def test_stored_values_survive_a_decode_round_trip():
    rec = Record("Claim", [("who", PublicKey()), ("amount", UInt(64))])
    for codec, value in ((UInt(64), 2**64 - 1), (Int(16), -7), (rec, {"who": b"\x01" * 32, "amount": 3})):
        assert codec.decode(codec.encode(value)) == value


def test_pubkey_and_fixed_bytes_are_distinct_types():
    raw = b"\x01" * 32
    assert PublicKey().encode(raw) != FixedBytes(32).encode(raw)
    assert cbor2.loads(PublicKey().encode(raw)).tag == TAG_PUBKEY


def test_record_decodes_to_plain_dict_and_accepts_tuples():
    rec = Record("Claim", [("who", PublicKey()), ("amount", UInt(64))])
    who = b"\xaa" * 32
    assert rec.decode(rec.encode((who, 9))) == {"who": who, "amount": 9}
    assert rec.dummy == {"who": b"\x00" * 32, "amount": 0}


def test_encoding_is_canonical_across_dict_orders():
    assert dumps({2: "b", 1: "a"}) == dumps({1: "a", 2: "b"})


@pytest.mark.parametrize(
    "codec,value",
    [
        (UInt(8), 256),
        (UInt(64), -1),
        (UInt(64), True),
        (Int(8), 128),
        (Bool(), 1),
        (Field(), FIELD_MODULUS),
        (FixedBytes(4), b"\x00" * 5),
        (PublicKey(), "not-bytes"),
    ],
)
def test_out_of_contract_values_raise_encoding_error(codec, value):
    with pytest.raises(EncodingError):
        codec.encode(value)


def test_decode_rejects_item_of_another_type():
    with pytest.raises(EncodingError):
        UInt(64).decode(Int(64).encode(5))


def test_dummies_are_well_formed():
    for codec in (UInt(64), Int(16), Bool(), Field(), FixedBytes(8), PublicKey()):
        assert codec.decode(codec.encode(codec.dummy)) == codec.dummy


@pytest.mark.parametrize("descriptor", [float, 1.5, str, "u64", object, dict, Proof])
def test_non_canonical_descriptors_rejected_at_declaration(descriptor):
    with pytest.raises(ConfigError):
        resolve_codec(descriptor)


def test_record_with_float_field_rejected_at_declaration():
    with pytest.raises(ConfigError):
        Record("Bad", [("price", float)])


def test_bad_integer_width_is_config_error():
    with pytest.raises(ConfigError):
        UInt(12)
