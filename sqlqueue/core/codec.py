"""
Codecs — serialize queue values to and from the `value` BLOB column.

JsonCodec (default)
-------------------
Uses a pydantic v2 TypeAdapter over `Any`, so a single queue can hold a mix
of JSON-compatible values:

    q.append("a", 1, 2.5, None, ["x"], {"k": "v"})

Wire format is compact UTF-8 JSON, one document per row:

    "a"   1   2.5   null   ["x"]   {"k":"v"}

Tuples come back as lists and bytes come back as str; use BytesCodec for
binary payloads.

BytesCodec
----------
Stores bytes unchanged. `str` values are UTF-8 encoded on the way in; every
value is returned as bytes.
"""

from __future__ import annotations

import dataclasses
from typing import Any

from pydantic import TypeAdapter

_ANY: TypeAdapter[Any] = TypeAdapter(Any)


@dataclasses.dataclass(frozen=True)
class JsonCodec:
    """JSON encoding via pydantic. Accepts any JSON-serializable value."""

    def encode(self, value: Any) -> bytes:
        return _ANY.dump_json(value)

    def decode(self, data: bytes) -> Any:
        return _ANY.validate_json(data)


@dataclasses.dataclass(frozen=True)
class BytesCodec:
    """Raw bytes passthrough."""

    encoding: str = "utf-8"

    def encode(self, value: Any) -> bytes:
        match value:
            case bytes():
                return value
            case bytearray() | memoryview():
                return bytes(value)
            case str():
                return value.encode(self.encoding)
            case _:
                raise TypeError(
                    f"BytesCodec accepts bytes or str, got {type(value).__name__}"
                )

    def decode(self, data: bytes) -> Any:
        return bytes(data)
