"""Protocol header descriptions and the length expressions they use."""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

_log = logging.getLogger(__name__)

MAX_NAME_LENGTH = 31
MAX_FIELDS = 100
MAX_NEXT = 100
_MASK32 = 0xFFFFFFFF

FieldReader = Callable[[str], int]


class ExprType(enum.Enum):
    FIELD = "field"
    VALUE = "value"
    NOT = "not"
    ADD = "+"
    SUB = "-"
    SHL = "<<"
    SHR = ">>"
    AND = "&"
    OR = "|"
    XOR = "^"


def _shl(a: int, b: int) -> int:
    return (a << b) if b < 32 else 0


def _shr(a: int, b: int) -> int:
    return (a >> b) if b < 32 else 0


_BINARY_OPS: dict[ExprType, Callable[[int, int], int]] = {
    ExprType.ADD: lambda a, b: a + b,
    ExprType.SUB: lambda a, b: a - b,
    ExprType.SHL: _shl,
    ExprType.SHR: _shr,
    ExprType.AND: lambda a, b: a & b,
    ExprType.OR: lambda a, b: a | b,
    ExprType.XOR: lambda a, b: a ^ b,
}


class Expr(ABC):
    """An unsigned 32-bit expression over header fields."""

    @property
    @abstractmethod
    def type(self) -> ExprType:
        """The kind of this expression."""

    @abstractmethod
    def evaluate(self, read_field: FieldReader) -> int:
        """Evaluate with ``read_field`` supplying field values."""


@dataclass(frozen=True)
class FieldExpr(Expr):
    name: str

    @property
    def type(self) -> ExprType:
        return ExprType.FIELD

    def evaluate(self, read_field: FieldReader) -> int:
        return read_field(self.name) & _MASK32


@dataclass(frozen=True)
class ValueExpr(Expr):
    value: int

    @property
    def type(self) -> ExprType:
        return ExprType.VALUE

    def evaluate(self, read_field: FieldReader) -> int:
        return self.value & _MASK32


@dataclass(frozen=True)
class NotExpr(Expr):
    operand: Expr

    @property
    def type(self) -> ExprType:
        return ExprType.NOT

    def evaluate(self, read_field: FieldReader) -> int:
        return ~self.operand.evaluate(read_field) & _MASK32


@dataclass(frozen=True)
class BinaryExpr(Expr):
    op: ExprType
    left: Expr
    right: Expr

    def __post_init__(self) -> None:
        if self.op not in _BINARY_OPS:
            raise ValueError(f"{self.op} is not a binary operator")

    @property
    def type(self) -> ExprType:
        return self.op

    def evaluate(self, read_field: FieldReader) -> int:
        left = self.left.evaluate(read_field)
        right = self.right.evaluate(read_field)
        return _BINARY_OPS[self.op](left, right) & _MASK32


@dataclass(frozen=True)
class Field:
    """A header field; offset and length are in bits."""

    name: str
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


class Header:
    """Layout of one protocol header and the headers that may follow it."""

    def __init__(self, name: str) -> None:
        self.name = name[:MAX_NAME_LENGTH]
        self.length: Optional[Expr] = None
        self._fields: list[Field] = []
        self._selector: Optional[Field] = None
        self._checksum: Optional[Field] = None
        self._next: list[tuple[int, Header]] = []

    def __repr__(self) -> str:
        return f"Header({self.name!r})"

    @property
    def fields(self) -> tuple[Field, ...]:
        return tuple(self._fields)

    @property
    def next(self) -> tuple[tuple[int, Header], ...]:
        return tuple(self._next)

    @property
    def selector(self) -> Optional[Field]:
        return self._selector

    @property
    def checksum(self) -> Optional[Field]:
        return self._checksum

    def add_field(self, name: str, offset: int, length: int) -> Field:
        if len(self._fields) >= MAX_FIELDS:
            raise ValueError(f"header {self.name} has too many fields")
        field = Field(name[:MAX_NAME_LENGTH], offset, length)
        self._fields.append(field)
        return field

    def get_field(self, name: str) -> Field:
        for field in self._fields:
            if field.name == name:
                return field
        raise KeyError(f"header {self.name} has no field {name!r}")

    def set_selector(self, name: str) -> None:
        self._selector = self.get_field(name)

    def set_checksum(self, name: str) -> None:
        self._checksum = self.get_field(name)

    def add_next(self, value: int, header: Header) -> None:
        if len(self._next) >= MAX_NEXT:
            raise ValueError(f"header {self.name} has too many successors")
        self._next.append((value, header))

    def lookup(self, name: str) -> Optional[Header]:
        """Find a header by name, searching depth first from this one."""
        if name == self.name:
            return self
        for _, header in self._next:
            found = header.lookup(name)
            if found is not None:
                return found
        return None

    def fixed_length(self) -> int:
        """The header length; the furthest field end when it is variable."""
        if self.length is None:
            raise ValueError(f"header {self.name} has no length")
        if isinstance(self.length, ValueExpr):
            return self.length.value
        _log.info("header %s: length is variable", self.name)
        return max((field.end for field in self._fields), default=0)


def extract_bits(data: bytes, offset: int, length: int) -> int:
    """Read ``length`` bits starting ``offset`` bits into ``data``, big-endian."""
    if offset < 0 or length < 0 or offset + length > len(data) * 8:
        raise ValueError("bit range outside data")
    if length == 0:
        return 0
    first = offset // 8
    last = (offset + length + 7) // 8
    chunk = int.from_bytes(data[first:last], "big")
    shift = (last - first) * 8 - (offset - first * 8) - length
    return (chunk >> shift) & ((1 << length) - 1)


def insert_bits(data: bytes, offset: int, length: int, value: int) -> bytes:
    """Return ``data`` with the given bit range replaced by ``value``."""
    if offset < 0 or length < 0 or offset + length > len(data) * 8:
        raise ValueError("bit range outside data")
    if length == 0:
        return bytes(data)
    total = len(data) * 8
    shift = total - offset - length
    field_mask = (1 << length) - 1
    number = int.from_bytes(data, "big")
    number &= ~(field_mask << shift)
    number |= (value & field_mask) << shift
    return number.to_bytes(len(data), "big")