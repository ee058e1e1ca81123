import threading

import pytest

from mapleflow import trace as trace_mod
from mapleflow.header import Header
from mapleflow.trace import (
    AddFieldEvent,
    AddHeaderEvent,
    DelFieldEvent,
    GotoEvent,
    Invalidation,
    ModifyEvent,
    PopEvent,
    ReadEnvEvent,
    ReadEvent,
    Trace,
    current_trace,
)


@pytest.fixture
def ethernet():
    h = Header("ethernet")
    h.add_field("dl_type", 96, 16)
    return h


def test_events_kept_in_order(ethernet):
    t = Trace()
    t.goto(None, ethernet, 0)
    t.read("dl_type", 0x0800)
    t.test("nw_proto", 2, True)
    t.read_env("topo_hosts", "hosts")
    assert t.events == [
        GotoEvent(None, ethernet, 0),
        ReadEvent("dl_type", 0x0800),
        trace_mod.TestEvent("nw_proto", 2, True),
        ReadEnvEvent("topo_hosts", "hosts"),
    ]


def test_mod_events_kept_separately(ethernet):
    t = Trace()
    t.pop(ethernet, 1)
    t.modify("dl_type", 0x0901, ethernet)
    t.add_header(14)
    t.add_field(112, 16, 0x4500)
    t.del_field(112, 16)
    assert t.events == []
    assert t.mod_events == [
        PopEvent(ethernet, 1),
        ModifyEvent("dl_type", 0x0901, ethernet),
        AddHeaderEvent(14),
        AddFieldEvent(112, 16, 0x4500),
        DelFieldEvent(112, 16),
    ]


def test_invalidations_recorded():
    t = Trace()
    marker = object()
    t.invalidate("map", marker)
    t.invalidate("map", None)
    assert t.invalidations == [Invalidation("map", marker), Invalidation("map", None)]


def test_names_truncated_to_31_characters():
    t = Trace()
    long_name = "x" * 40
    t.read(long_name, 1)
    t.invalidate(long_name, None)
    assert t.events[0].name == long_name[:31]
    assert t.invalidations[0].name == long_name[:31]


def test_clear_empties_everything(ethernet):
    t = Trace()
    t.read("in_port", 3)
    t.invalidate("map", None)
    t.modify("dl_type", 1, ethernet)
    t.clear()
    assert (t.events, t.invalidations, t.mod_events) == ([], [], [])


def test_pops_alone_are_not_modifications(ethernet):
    t = Trace()
    t.pop(ethernet, 1)
    assert t.has_modifications() is False


@pytest.mark.parametrize(
    "record",
    [
        lambda t, h: t.modify("dl_type", 1, h),
        lambda t, h: t.add_header(20),
        lambda t, h: t.add_field(0, 8, 1),
        lambda t, h: t.del_field(0, 8),
    ],
)
def test_changes_are_modifications(ethernet, record):
    t = Trace()
    t.pop(ethernet, 1)
    record(t, ethernet)
    assert t.has_modifications() is True


def test_test_result_stored_as_bool():
    t = Trace()
    t.test("dl_type", 0x0800, 0)
    assert t.events[0].result is False


def test_current_trace_is_per_thread():
    mine = current_trace()
    assert current_trace() is mine
    seen = []
    worker = threading.Thread(target=lambda: seen.append(current_trace()))
    worker.start()
    worker.join()
    assert len(seen) == 1
    assert seen[0] is not mine
    assert isinstance(seen[0], Trace)