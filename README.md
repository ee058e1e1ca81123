# mapleflow

Building blocks for a trace-driven SDN controller. A forwarding function is
run against each packet; what it reads, tests and changes is recorded in a
trace, and the traces are folded into a decision tree per switch.

## Modules

- `mapleflow.header`: protocol header layouts (`Header`, `Field`) and the
  unsigned 32-bit length expressions a header may use (`Expr`, `ValueExpr`,
  `FieldExpr`, `NotExpr`, `BinaryExpr`, with `ExprType`). `Header` holds its
  fields, an optional selector field, an optional checksum field and the
  headers that may follow it; `lookup` finds a header by name depth first
  and `fixed_length` gives its length in bytes. `extract_bits` and
  `insert_bits` read and write big-endian bit ranges of a byte string.
- `mapleflow.packet_parser`: `PacketParser` keeps a packet and a stack of
  header positions in it. `pull` steps into the header chosen by the current
  header's selector, `push` steps back, `reset` returns to the outermost
  header. Fields are read with `read` and `read_int` and set with `modify`,
  which also refreshes a header checksum. `add_header`, `add_field` and
  `del_field` insert and remove bytes; `raw` and `payload` return the bytes
  of the current header onwards and after it. Failures raise `PacketError`.
  `internet_checksum` computes the RFC 1071 checksum.
- `mapleflow.trace`: `Trace` records read events (`ReadEvent`, `TestEvent`,
  `ReadEnvEvent`, `GotoEvent`), packet changes (`PopEvent`, `ModifyEvent`,
  `AddHeaderEvent`, `AddFieldEvent`, `DelFieldEvent`) and `Invalidation`s.
  `current_trace()` gives each thread its own trace.
- `mapleflow.store`: `Store`, a thread-safe key/value store. `read` records a
  dependency in the trace; `add_key`, `delete_key`, `modify`, `upsert` and
  `clear` record invalidations when they change something.
- `mapleflow.trace_tree`: `TraceTree` grows from traces with `augment`
  (returning False when the path is already known), empties subtrees under
  dependencies that a predicate `(name, arg)` accepts with `invalidate`, and
  offers `render` and `leaves`. Its nodes are `Empty`, `Leaf`, `ValueNode`,
  `TestNode`, `DependNode` and `GotoNode`; `events_to_tree` builds a single
  path.
- `mapleflow.spanning_tree`: `build_tree` runs a breadth-first search over
  switches described by `Adjacency` links and returns a `NodeInfo` per
  switch (None where unreached); `route_to` turns it into the `Edge`s from
  the destination back to the source.

## Installing

```
pip install .
```

## Example

```python
from mapleflow.header import Header, ValueExpr
from mapleflow.packet_parser import PacketParser

ethernet = Header("ethernet")
ethernet.add_field("dl_dst", 0, 48)
ethernet.add_field("dl_src", 48, 48)
ethernet.add_field("dl_type", 96, 16)
ethernet.length = ValueExpr(14)
ethernet.set_selector("dl_type")

ipv4 = Header("ipv4")
for name, offset, length in [
    ("ver_ihl", 0, 8), ("tos", 8, 8), ("len", 16, 16), ("id", 32, 16),
    ("frag", 48, 16), ("ttl", 64, 8), ("nw_proto", 72, 8), ("sum", 80, 16),
    ("nw_src", 96, 32), ("nw_dst", 128, 32),
]:
    ipv4.add_field(name, offset, length)
ipv4.length = ValueExpr(20)
ipv4.set_checksum("sum")
ethernet.add_next(0x0800, ipv4)

frame = bytes(12) + b"\x08\x00" + bytes(20)
parser = PacketParser(ethernet, frame)
parser.pull()                # step from ethernet into ipv4
ttl = parser.read_int("ttl")
parser.modify("ttl", 64)     # the ipv4 checksum is recomputed
```

## What it does not do

- Header layouts are built in code; there is no reader for a text format
  describing them.
- There is no IGMP handling or multicast group tracking.
- Nothing here talks to switches: trace trees are not turned into flow
  table entries or messages, and there is no controller process or command
  to run.

## Running the tests

```
pip install .[test]
pytest
```