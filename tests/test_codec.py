import json

import pytest

from sqlqueue.core.codec import BytesCodec, JsonCodec
from sqlqueue.ports.codec import ValueCodec

# ---------------------------------------------------------------------------
# JsonCodec
# ---------------------------------------------------------------------------


def test_json_encode_produces_bytes():
    assert isinstance(JsonCodec().encode("a"), bytes)


def test_json_encode_is_valid_json():
    data = JsonCodec().encode({"to": "user@example.com", "n": 3})
    assert json.loads(data) == {"to": "user@example.com", "n": 3}


@pytest.mark.parametrize(
    "value",
    ["dongs", 1, 2.5, True, None, ["x", 1], {"k": "v"}, ""],
)
def test_json_preserves_scalars_and_containers(value):
    codec = JsonCodec()
    assert codec.decode(codec.encode(value)) == value


def test_json_keeps_int_and_str_distinct():
    codec = JsonCodec()
    assert codec.decode(codec.encode(1)) == 1
    assert codec.decode(codec.encode("1")) == "1"


def test_json_tuple_comes_back_as_list():
    codec = JsonCodec()
    assert codec.decode(codec.encode((1, 2))) == [1, 2]


def test_json_rejects_unserializable_value():
    with pytest.raises(ValueError):
        JsonCodec().encode(object())


# ---------------------------------------------------------------------------
# BytesCodec
# ---------------------------------------------------------------------------


def test_bytes_passthrough():
    codec = BytesCodec()
    assert codec.encode(b"binary\x00\xff") == b"binary\x00\xff"
    assert codec.decode(b"binary\x00\xff") == b"binary\x00\xff"


def test_bytes_encodes_str_as_utf8():
    assert BytesCodec().encode("héllo") == "héllo".encode("utf-8")


def test_bytes_accepts_bytearray():
    assert BytesCodec().encode(bytearray(b"abc")) == b"abc"


def test_bytes_rejects_other_types():
    with pytest.raises(TypeError, match="int"):
        BytesCodec().encode(42)


# ---------------------------------------------------------------------------
# Port
# ---------------------------------------------------------------------------


def test_builtin_codecs_satisfy_port():
    assert isinstance(JsonCodec(), ValueCodec)
    assert isinstance(BytesCodec(), ValueCodec)


def test_custom_object_satisfies_port():
    class Upper:
        def encode(self, value):
            return value.upper().encode()

        def decode(self, data):
            return data.decode()

    assert isinstance(Upper(), ValueCodec)
