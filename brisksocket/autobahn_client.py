"""Client that runs the fuzzing test cases of a WebSocket conformance server."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import suppress

from .errors import WebSocketError
from .fragment import FragmentCollector
from .frame import Frame, OpCode
from .handshake import client

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9001
DEFAULT_AGENT = "brisksocket"


async def connect(host: str, port: int, path: str) -> FragmentCollector:
    """Open a WebSocket to ``/path`` on the conformance server."""
    reader, writer = await asyncio.open_connection(host, port)
    try:
        ws, _ = await client(reader, writer, f"{host}:{port}", f"/{path}")
    except BaseException:
        writer.close()
        raise
    return FragmentCollector(ws)


async def _close(ws: FragmentCollector) -> None:
    _, writer = ws.into_inner()
    writer.close()
    with suppress(OSError):
        await writer.wait_closed()


async def get_case_count(host: str, port: int) -> int:
    """Ask the server how many test cases it has."""
    ws = await connect(host, port, "getCaseCount")
    try:
        message = await ws.read_frame()
        await ws.write_frame(Frame.close(1000))
    finally:
        await _close(ws)
    return int(bytes(message.payload).decode("utf-8"))


async def _echo_case(ws: FragmentCollector) -> None:
    while True:
        try:
            message = await ws.read_frame()
        except (WebSocketError, OSError) as exc:
            print(f"Error: {exc}")
            await ws.write_frame(Frame.close_raw(b""))
            return
        if message.opcode in (OpCode.TEXT, OpCode.BINARY):
            await ws.write_frame(Frame(True, message.opcode, message.payload))
        elif message.opcode is OpCode.CLOSE:
            return


async def run(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, agent: str = DEFAULT_AGENT) -> int:
    """Run every test case, then ask the server to write its reports.

    Returns the number of cases run.
    """
    count = await get_case_count(host, port)
    for case in range(1, count + 1):
        ws = await connect(host, port, f"runCase?case={case}&agent={agent}")
        try:
            await _echo_case(ws)
        finally:
            await _close(ws)

    ws = await connect(host, port, f"updateReports?agent={agent}")
    try:
        await ws.write_frame(Frame.close(1000))
    finally:
        await _close(ws)
    return count


def main(argv=None) -> int:
    """Run the conformance cases against a server."""
    parser = argparse.ArgumentParser(prog="brisksocket-autobahn", description="Run conformance test cases.")
    parser.add_argument("--host", default=DEFAULT_HOST, help="server host")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="server port")
    parser.add_argument("--agent", default=DEFAULT_AGENT, help="agent name used in reports")
    args = parser.parse_args(argv)
    try:
        asyncio.run(run(args.host, args.port, args.agent))
    except (OSError, WebSocketError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())