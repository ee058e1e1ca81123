"""Walks a packet header by header according to a header spec."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from mapleflow.header import Field, Header, extract_bits, insert_bits

MAX_DEPTH = 32


class PacketError(Exception):
    """Raised when a packet does not fit the operation asked of it."""


@dataclass(frozen=True)
class PullResult:
    old_spec: Header
    selector_value: int
    new_spec: Header
    stack_top: int


@dataclass
class _Frame:
    spec: Header
    start: int
    length: int


def internet_checksum(data: bytes) -> int:
    """The ones' complement checksum of RFC 1071."""
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    total = sum(int.from_bytes(data[i:i + 2], "big") for i in range(0, len(data), 2))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


class PacketParser:
    """A packet with a stack of header positions within it."""

    def __init__(self, spec: Header, data: bytes, max_length: Optional[int] = None) -> None:
        self._buffer = bytearray(data)
        self._stack = [_Frame(spec, 0, len(self._buffer))]
        self.max_length = max_length

    @property
    def _top(self) -> _Frame:
        return self._stack[-1]

    @property
    def spec(self) -> Header:
        return self._top.spec

    @property
    def type(self) -> str:
        return self._top.spec.name

    @property
    def depth(self) -> int:
        return len(self._stack) - 1

    @property
    def buffer(self) -> bytes:
        return bytes(self._buffer)

    def reset(self) -> None:
        """Return to the outermost header, dropping every pulled one."""
        outermost = self._stack[0]
        self._stack = [outermost]

    def _locate(self, name: str) -> Field:
        field = self.spec.get_field(name)
        if (field.end + 7) // 8 > self._top.length:
            raise PacketError(f"field {name} lies beyond the packet")
        return field

    def _header_length(self) -> int:
        if self.spec.length is None:
            raise PacketError(f"header {self.spec.name} has no length")
        return self.spec.length.evaluate(self.read_int)

    def _check_room(self, extra: int) -> None:
        if self.max_length is not None and self._top.length + extra >= self.max_length:
            raise PacketError("packet would exceed its maximum length")

    def pull(self) -> PullResult:
        """Move to the header selected by the current header's selector."""
        top = self._top
        selector = top.spec.selector
        if selector is None:
            raise PacketError(f"header {top.spec.name} has no selector")
        value = self.read(selector.name)
        for next_value, next_spec in top.spec.next:
            if next_value == value:
                offset = self._header_length()
                if len(self._stack) >= MAX_DEPTH:
                    raise PacketError("header stack is full")
                remaining = top.length - offset
                if remaining < 0:
                    raise PacketError("header runs past the end of the packet")
                self._stack.append(_Frame(next_spec, top.start + offset, remaining))
                return PullResult(top.spec, value, next_spec, self.depth)
        raise PacketError(f"no header follows {top.spec.name} for value {value:#x}")

    def push(self) -> tuple[Header, int]:
        """Return to the previous header; gives it and the depth left."""
        if len(self._stack) == 1:
            raise PacketError("already at the outermost header")
        previous = self.depth
        self._stack.pop()
        return self.spec, previous

    def read(self, field: str) -> int:
        f = self._locate(field)
        start = self._top.start
        return extract_bits(self._buffer[start:start + (f.end + 7) // 8], f.offset, f.length)

    def read_int(self, field: str) -> int:
        """Read a field of at most 8, or exactly 16 or 32, bits."""
        length = self.spec.get_field(field).length
        if length > 8 and length not in (16, 32):
            raise PacketError(f"field {field} of {length} bits is not a 32-bit value")
        return self.read(field)

    def raw(self) -> bytes:
        top = self._top
        return bytes(self._buffer[top.start:top.start + top.length])

    def payload(self) -> bytes:
        return self.raw()[self._header_length():]

    def modify(self, field: str, value: int) -> Header:
        """Set a field, refreshing the header checksum if it has one."""
        f = self._locate(field)
        top = self._top
        end = top.start + (f.end + 7) // 8
        self._buffer[top.start:end] = insert_bits(
            bytes(self._buffer[top.start:end]), f.offset, f.length, value
        )
        checksum_field = top.spec.checksum
        if checksum_field is not None:
            if checksum_field.offset % 16 or checksum_field.length != 16:
                raise PacketError("checksum must be a 16-bit aligned field")
            hlen = self._header_length()
            pos = top.start + checksum_field.offset // 8
            self._buffer[pos:pos + 2] = b"\x00\x00"
            region = bytes(self._buffer[top.start:top.start + hlen])
            self._buffer[pos:pos + 2] = internet_checksum(region).to_bytes(2, "big")
        return top.spec

    def add_header(self, spec: Header) -> int:
        """Insert a zeroed header of ``spec``'s length at the packet front."""
        if len(self._stack) != 1:
            raise PacketError("headers can only be added at the outermost level")
        hlen = spec.fixed_length()
        self._check_room(hlen)
        top = self._top
        self._buffer[top.start:top.start] = bytes(hlen)
        top.length += hlen
        return hlen

    def add_field(self, offset: int, length: int, value: int) -> None:
        """Insert ``length`` bits holding ``value`` at bit ``offset``."""
        offb, lenb = offset // 8, length // 8
        self._check_room(lenb)
        top = self._top
        if offb > top.length:
            raise PacketError("field offset beyond the packet")
        data = (value & ((1 << (lenb * 8)) - 1)).to_bytes(lenb, "big")
        pos = top.start + offb
        self._buffer[pos:pos] = data
        top.length += lenb

    def del_field(self, offset: int, length: int) -> None:
        """Remove ``length`` bits at bit ``offset``."""
        offb, lenb = offset // 8, length // 8
        top = self._top
        if offb + lenb > top.length:
            raise PacketError("field lies beyond the packet")
        pos = top.start + offb
        del self._buffer[pos:pos + lenb]
        top.length -= lenb