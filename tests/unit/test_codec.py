import base64
from datetime import datetime

import bson
import pytest
from bson import Decimal128, ObjectId

from syncgateway.codec import decode_id_set, decode_many, encode_id_set, encode_many
from syncgateway.core.exceptions import DocumentDecodeError


def test_round_trip_preserves_order_and_values():
    documents = [
        {"_id": ObjectId(), "title": "first", "count": 3, "ratio": 0.5, "done": False},
        {"nested": {"tags": ["a", "b"], "blob": b"\x00\x01"}, "empty": None},
        {"when": datetime(2024, 5, 1, 12, 30), "ref": ObjectId()},
    ]

    assert decode_many(encode_many(documents)) == documents


def test_empty_payload_decodes_to_empty_list():
    assert encode_many([]) == b""
    assert decode_many(b"") == []


def test_truncated_stream_is_rejected_not_partially_decoded():
    payload = encode_many([{"a": 1}, {"b": 2}])

    with pytest.raises(DocumentDecodeError):
        decode_many(payload[:-3])


def test_garbage_stream_is_rejected():
    with pytest.raises(DocumentDecodeError):
        decode_many(b"not bson at all")


def test_unsupported_value_type_is_rejected():
    payload = bson.encode({"price": Decimal128("1.10")})

    with pytest.raises(DocumentDecodeError):
        decode_many(payload)


def test_id_set_round_trip_deduplicates_in_order():
    first, second = ObjectId(), ObjectId()

    encoded = encode_id_set([first, second, first])

    assert decode_id_set(encoded) == [first, second]


def test_id_set_accepts_standard_base64_with_padding():
    identifier = ObjectId()
    text = base64.b64encode(bson.encode({"x": identifier})).decode("ascii")

    assert decode_id_set(text) == [identifier]


def test_encoded_id_set_fits_a_path_segment():
    identifiers = [ObjectId() for _ in range(50)]

    text = encode_id_set(identifiers)

    assert not set(text) & set("/+=")
    assert decode_id_set(text) == identifiers


def test_id_set_keys_are_ignored():
    identifier = ObjectId()
    text = base64.urlsafe_b64encode(bson.encode({"anything": identifier})).decode("ascii")

    assert decode_id_set(text) == [identifier]


def test_id_set_with_non_identifier_value_is_rejected():
    text = base64.urlsafe_b64encode(bson.encode({"0": ObjectId(), "1": "plain"})).decode("ascii")

    with pytest.raises(DocumentDecodeError):
        decode_id_set(text)


def test_id_set_that_is_not_a_document_is_rejected():
    text = base64.urlsafe_b64encode(b"\x01\x02\x03").decode("ascii")

    with pytest.raises(DocumentDecodeError):
        decode_id_set(text)


def test_id_set_with_invalid_base64_is_rejected():
    with pytest.raises(DocumentDecodeError):
        decode_id_set("@@@")
