"""Component identities and layer ordering keys.

``Id`` values are derived from arbitrary seeds with a fixed 64-bit xxHash,
so the same seed (or the same derivation chain) always yields the same id
across frames and across processes.  ``LayerId`` is a plain signed integer
with a few well-separated named tiers.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import Any, ClassVar

import xxhash

__all__ = ["Id", "InvalidIdError", "LayerId"]

_U64_MAX = (1 << 64) - 1

# ---------------------------------------------------------------------------
# Seed encoding
# ---------------------------------------------------------------------------

# Every value is written as <tag><payload>; variable length payloads are
# length-prefixed so that ("ab", "c") and ("a", "bc") hash differently.


def _length(n: int) -> bytes:
    return n.to_bytes(8, "little")


def _feed(hasher: xxhash.xxh64, value: Any) -> None:
    """Write a type-tagged encoding of *value* into *hasher*."""
    if value is None:
        hasher.update(b"n")
    elif isinstance(value, Id):
        hasher.update(b"I" + value.value.to_bytes(8, "little"))
    elif isinstance(value, enum.Enum):
        hasher.update(b"e")
        _feed(hasher, type(value).__qualname__)
        _feed(hasher, value.value)
    elif isinstance(value, bool):
        hasher.update(b"?" + (b"\x01" if value else b"\x00"))
    elif isinstance(value, int):
        raw = value.to_bytes(value.bit_length() // 8 + 1, "little", signed=True)
        hasher.update(b"i" + _length(len(raw)) + raw)
    elif isinstance(value, float):
        hasher.update(b"f" + struct.pack("<d", value))
    elif isinstance(value, str):
        raw = value.encode("utf-8")
        hasher.update(b"s" + _length(len(raw)) + raw)
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        hasher.update(b"b" + _length(len(raw)) + raw)
    elif isinstance(value, (tuple, list)):
        hasher.update(b"t" + _length(len(value)))
        for item in value:
            _feed(hasher, item)
    else:
        raise TypeError(
            f"cannot derive an Id from {type(value).__name__!r}; use str, "
            "bytes, int, float, bool, None, Enum, Id or tuples of those"
        )


# ---------------------------------------------------------------------------
# Id
# ---------------------------------------------------------------------------


class InvalidIdError(ValueError):
    """Raised when an id would be zero, the reserved invalid value."""


@dataclass(frozen=True, slots=True)
class Id:
    """Opaque, non-zero 64-bit component identifier.

    Ids compare by equality only.  Build them with :meth:`new` and
    :meth:`derive` rather than from raw integers.
    """

    value: int

    def __post_init__(self) -> None:
        if not 0 < self.value <= _U64_MAX:
            raise InvalidIdError(f"id must be a non-zero u64, got {self.value}")

    @classmethod
    def new(cls, seed: Any) -> Id:
        """Create an id by hashing *seed*."""
        hasher = xxhash.xxh64()
        _feed(hasher, seed)
        return cls._from_digest(hasher.intdigest())

    def derive(self, seed: Any) -> Id:
        """Combine this id with *seed* into a stable child id.

        ``Id.new("list").derive(3)`` names the fourth row of a list without
        any global counter.
        """
        hasher = xxhash.xxh64()
        _feed(hasher, self)
        _feed(hasher, seed)
        return self._from_digest(hasher.intdigest())

    @classmethod
    def _from_digest(cls, digest: int) -> Id:
        if digest == 0:
            raise InvalidIdError("id hash is 0")
        return cls(digest)

    def __repr__(self) -> str:
        return f"Id({self.value:#018x})"


# ---------------------------------------------------------------------------
# LayerId
# ---------------------------------------------------------------------------


class LayerId(int):
    """Elevation of a component.

    Higher layers receive events first and are drawn last.  Values are
    signed 16-bit; the named tiers leave room for custom layers between
    them, e.g. ``LayerId(LayerId.POPUP + 10)``.
    """

    BACKGROUND: ClassVar[LayerId]
    MIDDLE: ClassVar[LayerId]
    FOREGROUND: ClassVar[LayerId]
    POPUP: ClassVar[LayerId]
    OVERLAY: ClassVar[LayerId]
    TOPMOST: ClassVar[LayerId]

    MIN: ClassVar[int] = -(1 << 15)
    MAX: ClassVar[int] = (1 << 15) - 1

    def __new__(cls, value: int) -> LayerId:
        value = int(value)
        if not cls.MIN <= value <= cls.MAX:
            raise ValueError(f"layer id {value} is outside the i16 range")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        name = _LAYER_NAMES.get(int(self))
        if name is not None:
            return f"LayerId.{name}"
        return f"LayerId({int(self)})"


LayerId.BACKGROUND = LayerId(-1_000)
LayerId.MIDDLE = LayerId(0)
LayerId.FOREGROUND = LayerId(1_000)
LayerId.POPUP = LayerId(2_000)
LayerId.OVERLAY = LayerId(5_000)
LayerId.TOPMOST = LayerId(10_000)

_LAYER_NAMES: dict[int, str] = {
    -1_000: "BACKGROUND",
    0: "MIDDLE",
    1_000: "FOREGROUND",
    2_000: "POPUP",
    5_000: "OVERLAY",
    10_000: "TOPMOST",
}
