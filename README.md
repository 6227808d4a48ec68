# brisksocket

An asyncio implementation of the WebSocket protocol (RFC 6455). You can use
it as a raw frame parser and handle message assembly yourself. You can also
use it as a complete server and client: it answers pings, echoes close
frames, checks UTF-8 in text messages and performs the HTTP upgrade
handshake.

It depends only on the standard library.

## Installation

```
pip install brisksocket
```

## Frames

`brisksocket.frame.Frame` is a dataclass with the fields `fin`, `opcode`,
`payload` (a `bytearray`) and `mask`. These constructors build the common
frames: `Frame.text`, `Frame.binary`, `Frame.close(code, reason)`,
`Frame.close_raw` and `Frame.pong`. `encode()` returns the frame's wire
bytes. `fmt_head()` returns the header on its own. `OpCode` is an `IntEnum`.
Converting an unknown opcode value raises `InvalidValueError`.

`brisksocket.mask.unmask(payload, mask)` XORs a `bytearray` in place with a
4-byte mask.

## Reading and writing frames

`brisksocket.websocket.WebSocket` works on an asyncio reader and writer pair
whose handshake has already completed. `read_frame()` returns single frames
as they arrive. In the server role it unmasks their payloads. In the client
role, `write_frame()` masks outgoing frames. Once a close frame has been
written, any further frame other than a close raises `ConnectionClosedError`.

```python
from brisksocket.frame import OpCode
from brisksocket.websocket import Role, WebSocket

async def echo(reader, writer):
    ws = WebSocket(reader, writer, Role.SERVER)
    while True:
        frame = await ws.read_frame()
        if frame.opcode is OpCode.CLOSE:
            break
        if frame.opcode in (OpCode.TEXT, OpCode.BINARY):
            await ws.write_frame(frame)
```

These settings are attributes of the socket:

- `auto_close` (default `True`): reply to a received close frame.
- `auto_pong` (default `True`): answer pings with pongs. Pings are then not returned to the caller.
- `max_message_size` (default 64 MiB): reject frames whose payload has at least this many bytes.
- `auto_apply_mask` (default `True`): mask outgoing client frames.
- `writev` and `writev_threshold` (default `True` and 1024): write payloads larger than the threshold separately from their header.

`is_closed` tells whether a close frame has been written. `flush()` waits for
the writer to drain. `into_inner()` returns the `(reader, writer)` pair.

## Whole messages

A message can be split across several frames. `brisksocket.fragment.FragmentCollector`
joins the frames and returns only complete messages, along with any control
frames it is not configured to answer itself. The payload of every text
message it returns is valid UTF-8.

```python
from brisksocket.fragment import FragmentCollector

ws = FragmentCollector(WebSocket(reader, writer, Role.SERVER))
message = await ws.read_frame()
assert message.fin
```

## Split halves

`WebSocket.split()` returns a `WebSocketRead` and a `WebSocketWrite`.
`after_handshake_split(reader, writer, role)` builds the same pair directly.
The read half never writes. Any pong or close reply it owes is passed to the
`send_fn` coroutine given to `read_frame(send_fn)`, which should send it
through the write half. If `send_fn` raises, `SendError` is raised.
`FragmentCollectorRead` collects whole messages from a read half in the
same way.

## Handshakes

On the server side, `brisksocket.upgrade.accept(reader, writer)` reads the
HTTP request and checks `Sec-WebSocket-Key` and `Sec-WebSocket-Version`. It
then sends the `101 Switching Protocols` response and returns
`(WebSocket, UpgradeRequest)`. To inspect the request yourself, use the
separate steps:

- `read_request` reads the request.
- `is_upgrade_request` checks whether it asks for a WebSocket upgrade.
- `header_contains_value` looks for one value in a header.
- `upgrade` builds the response.
- `sec_websocket_accept` computes the accept value.

On the client side, `brisksocket.handshake.client(reader, writer, host, path="/", headers=None)`
sends the upgrade request with a key from `generate_key()`. Entries in
`headers` are added to the default headers or replace them. The response is
checked with `verify`: status 101, `Upgrade: websocket`,
`Connection: upgrade`. The call returns the client `WebSocket` and the
`HttpResponse`.

## Errors

Every protocol error is a subclass of `brisksocket.errors.WebSocketError`.
Examples are `InvalidUTF8Error`, `FrameTooLargeError`,
`ConnectionClosedError` and `InvalidStatusCodeError`, which carries the
status in `.status`. `brisksocket.close.CloseCode.from_code` classifies a
close status code, and `is_allowed()` tells whether that code may appear on
the wire.

## Commands

Run an echo server, on 127.0.0.1:8080 by default. `--split` makes it use
separate read and write halves:

```
brisksocket-echo --host 127.0.0.1 --port 8080
```

Run the cases of an Autobahn fuzzing server, on localhost:9001 by default,
and then ask it to write its reports:

```
brisksocket-autobahn --host localhost --port 9001 --agent brisksocket
```

## What it does not do

- There is no permessage-deflate or any other extension.
- The package does not set up TLS itself. Both commands use plain TCP. For
  encrypted connections, open TLS streams yourself and pass them in.
- The client handshake does not check `Sec-WebSocket-Accept` in the
  response.
- The server handshake does not look at `Origin`, `Sec-WebSocket-Protocol` or
  `Sec-WebSocket-Extensions`.