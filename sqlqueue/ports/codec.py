"""
ValueCodec — the port between queue values and the `value` BLOB column.

Any object satisfying this structural Protocol can be passed as
`QueueConfig.codec`. No base class or registration is required.

Contract
--------
encode(value) -> bytes
  - called once per appended value, before any row is written
  - may raise (TypeError, ValueError, ...) for values it cannot represent;
    the append is then aborted without touching the table

decode(data) -> value
  - inverse of encode for every value encode accepted
  - the queue never inspects the returned object
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ValueCodec(Protocol):
    """
    Converts queue values to and from the bytes stored in the table.

    Built-in implementations:
      - JsonCodec  — JSON via pydantic (default; str, int, float, bool, None,
                     lists and dicts)
      - BytesCodec — raw bytes passthrough
    """

    def encode(self, value: Any) -> bytes:
        """Serialize one queue value to the bytes stored in `value`."""
        ...

    def decode(self, data: bytes) -> Any:
        """Restore a queue value from the bytes read back from `value`."""
        ...
