"""A WebSocket echo server that sends every text and binary message back."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import suppress

from .errors import WebSocketError
from .fragment import FragmentCollector, FragmentCollectorRead
from .frame import Frame, OpCode
from .upgrade import accept
from .websocket import WebSocket

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


async def handle_client(ws: WebSocket) -> None:
    """Echo whole messages on ``ws`` until the peer closes the connection."""
    collector = FragmentCollector(ws)
    while True:
        frame = await collector.read_frame()
        if frame.opcode is OpCode.CLOSE:
            return
        if frame.opcode in (OpCode.TEXT, OpCode.BINARY):
            await collector.write_frame(frame)


async def handle_client_split(ws: WebSocket) -> None:
    """Echo whole messages using separate read and write sides of ``ws``."""
    rx, tx = ws.split()
    collector = FragmentCollectorRead(rx)

    async def send(frame: Frame) -> None:
        await tx.write_frame(frame)

    while True:
        frame = await collector.read_frame(send)
        if frame.opcode is OpCode.CLOSE:
            return
        if frame.opcode in (OpCode.TEXT, OpCode.BINARY):
            await tx.write_frame(frame)


async def _close_writer(writer) -> None:
    writer.close()
    with suppress(OSError):
        await writer.wait_closed()


async def _serve_connection(reader, writer, split: bool) -> None:
    print("Client connected")
    try:
        try:
            ws, _ = await accept(reader, writer)
        except (WebSocketError, OSError) as exc:
            print(f"An error occurred: {exc!r}")
            return
        handler = handle_client_split if split else handle_client
        try:
            await handler(ws)
        except (WebSocketError, OSError) as exc:
            print(f"Error in websocket connection: {exc}", file=sys.stderr)
    finally:
        await _close_writer(writer)


async def serve(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, split: bool = False) -> asyncio.Server:
    """Start listening and return the running server."""

    async def on_connection(reader, writer) -> None:
        await _serve_connection(reader, writer, split)

    server = await asyncio.start_server(on_connection, host, port)
    bound_host, bound_port = server.sockets[0].getsockname()[:2]
    print(f"Server started, listening on {bound_host}:{bound_port}")
    return server


async def _serve_forever(host: str, port: int, split: bool) -> None:
    server = await serve(host, port, split)
    async with server:
        await server.serve_forever()


def main(argv=None) -> int:
    """Run the echo server until interrupted."""
    parser = argparse.ArgumentParser(prog="brisksocket-echo", description="WebSocket echo server.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="port to listen on")
    parser.add_argument("--split", action="store_true", help="use separate read and write sides")
    args = parser.parse_args(argv)
    try:
        asyncio.run(_serve_forever(args.host, args.port, args.split))
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())