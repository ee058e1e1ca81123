"""Record of what a policy looked at and changed while handling one packet."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from mapleflow.header import Header

MAX_NAME_LENGTH = 31


def _name(name: str) -> str:
    return name[:MAX_NAME_LENGTH]


@dataclass(frozen=True)
class ReadEvent:
    """A field of the packet was read."""

    name: str
    value: int


@dataclass(frozen=True)
class TestEvent:
    """A field of the packet was compared with a value."""

    __test__: ClassVar[bool] = False

    name: str
    value: int
    result: bool


@dataclass(frozen=True)
class ReadEnvEvent:
    """Something outside the packet (topology, a store entry) was read."""

    name: str
    arg: Any


@dataclass(frozen=True)
class GotoEvent:
    """Parsing moved on from one header to the next."""

    old_spec: Optional[Header]
    new_spec: Header
    stack_base: int


@dataclass(frozen=True)
class PopEvent:
    """Parsing moved back to an enclosing header."""

    new_spec: Header
    stack_base: int


@dataclass(frozen=True)
class ModifyEvent:
    """A field of the packet was given a new value."""

    name: str
    value: int
    spec: Header


@dataclass(frozen=True)
class AddHeaderEvent:
    """A zeroed header of ``hlen`` bytes was put at the packet front."""

    hlen: int


@dataclass(frozen=True)
class AddFieldEvent:
    """Bits were inserted into the packet."""

    offset: int
    length: int
    value: int


@dataclass(frozen=True)
class DelFieldEvent:
    """Bits were removed from the packet."""

    offset: int
    length: int


@dataclass(frozen=True)
class Invalidation:
    """Something that earlier decisions may have depended on has changed."""

    name: str
    arg: Any


Event = Union[ReadEvent, TestEvent, ReadEnvEvent, GotoEvent]
ModEvent = Union[PopEvent, ModifyEvent, AddHeaderEvent, AddFieldEvent, DelFieldEvent]


@dataclass
class Trace:
    """Observations, invalidations and packet changes, each in order."""

    events: list[Event] = field(default_factory=list)
    invalidations: list[Invalidation] = field(default_factory=list)
    mod_events: list[ModEvent] = field(default_factory=list)

    def read(self, name: str, value: int) -> None:
        self.events.append(ReadEvent(_name(name), value))

    def test(self, name: str, value: int, result: bool) -> None:
        self.events.append(TestEvent(_name(name), value, bool(result)))

    def read_env(self, name: str, arg: Any) -> None:
        self.events.append(ReadEnvEvent(_name(name), arg))

    def invalidate(self, name: str, arg: Any) -> None:
        self.invalidations.append(Invalidation(_name(name), arg))

    def goto(self, old_spec: Optional[Header], new_spec: Header, stack_base: int) -> None:
        self.events.append(GotoEvent(old_spec, new_spec, stack_base))

    def pop(self, new_spec: Header, stack_base: int) -> None:
        self.mod_events.append(PopEvent(new_spec, stack_base))

    def modify(self, name: str, value: int, spec: Header) -> None:
        self.mod_events.append(ModifyEvent(_name(name), value, spec))

    def add_header(self, hlen: int) -> None:
        self.mod_events.append(AddHeaderEvent(hlen))

    def add_field(self, offset: int, length: int, value: int) -> None:
        self.mod_events.append(AddFieldEvent(offset, length, value))

    def del_field(self, offset: int, length: int) -> None:
        self.mod_events.append(DelFieldEvent(offset, length))

    def clear(self) -> None:
        self.events.clear()
        self.invalidations.clear()
        self.mod_events.clear()

    def has_modifications(self) -> bool:
        """Whether the packet itself was changed, not merely re-parsed."""
        return any(not isinstance(event, PopEvent) for event in self.mod_events)


_local = threading.local()


def current_trace() -> Trace:
    """The trace of the calling thread, created on first use."""
    trace = getattr(_local, "trace", None)
    if trace is None:
        trace = Trace()
        _local.trace = trace
    return trace