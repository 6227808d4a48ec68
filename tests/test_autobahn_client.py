import asyncio
import socket
from contextlib import asynccontextmanager
from urllib.parse import parse_qs, urlsplit

import pytest

from brisksocket.autobahn_client import connect, get_case_count, main, run
from brisksocket.frame import Frame, OpCode
from brisksocket.upgrade import accept


class FakeSuite:
    """A small stand-in for a conformance server."""

    def __init__(self, cases, count_text=None):
        self.cases = cases
        self.count_text = count_text if count_text is not None else str(len(cases)).encode()
        self.records = asyncio.Queue()
        self.targets = []

    async def handle(self, reader, writer):
        try:
            ws, request = await accept(reader, writer)
            ws.auto_close = False
            target = request.target
            self.targets.append(target)
            query = parse_qs(urlsplit(target).query)
            if target == "/getCaseCount":
                await ws.write_frame(Frame.text(self.count_text))
                closing = await ws.read_frame()
                await self.records.put(("count", closing.opcode, bytes(closing.payload)))
            elif target.startswith("/runCase?"):
                case = int(query["case"][0])
                if self.cases[case - 1] == "echo":
                    await ws.write_frame(Frame.text(f"message {case}".encode()))
                    echoed = await ws.read_frame()
                    await ws.write_frame(Frame(True, OpCode.PING, b"ping"))
                    pong = await ws.read_frame()
                    await ws.write_frame(Frame.close_raw(b""))
                    await self.records.put(
                        ("echo", case, echoed.opcode, bytes(echoed.payload), pong.opcode, bytes(pong.payload))
                    )
                else:
                    await ws.write_frame(Frame.text(b"\xff\xfe"))
                    closing = await ws.read_frame()
                    await self.records.put(("error", case, closing.opcode, bytes(closing.payload)))
            elif target.startswith("/updateReports?"):
                closing = await ws.read_frame()
                await self.records.put(("report", query["agent"][0], closing.opcode, bytes(closing.payload)))
        except Exception as exc:
            await self.records.put(("failure", repr(exc)))
        finally:
            writer.close()

    async def collect(self, n):
        return [await asyncio.wait_for(self.records.get(), 5) for _ in range(n)]


@asynccontextmanager
async def running(suite):
    server = await asyncio.start_server(suite.handle, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_get_case_count_reads_number_and_closes():
    suite = FakeSuite(["echo"] * 7)
    async with running(suite) as port:
        assert await get_case_count("127.0.0.1", port) == 7
        (record,) = await suite.collect(1)
    assert suite.targets == ["/getCaseCount"]
    assert record == ("count", OpCode.CLOSE, (1000).to_bytes(2, "big"))


@pytest.mark.asyncio
async def test_get_case_count_rejects_non_number():
    suite = FakeSuite([], count_text=b"many")
    async with running(suite) as port:
        with pytest.raises(ValueError):
            await get_case_count("127.0.0.1", port)
        await suite.collect(1)


@pytest.mark.asyncio
async def test_connect_returns_collector_for_path():
    suite = FakeSuite(["echo", "echo"])
    async with running(suite) as port:
        ws = await connect("127.0.0.1", port, "getCaseCount")
        try:
            message = await ws.read_frame()
            assert message.opcode is OpCode.TEXT
            assert message.payload == b"2"
            await ws.write_frame(Frame.close(1000))
        finally:
            _, writer = ws.into_inner()
            writer.close()
        await suite.collect(1)
    assert suite.targets == ["/getCaseCount"]


@pytest.mark.asyncio
async def test_run_echoes_every_case_and_updates_reports():
    suite = FakeSuite(["echo", "echo"])
    async with running(suite) as port:
        assert await run("127.0.0.1", port, "tester") == 2
        records = await suite.collect(4)
    echoes = sorted(r for r in records if r[0] == "echo")
    assert echoes == [
        ("echo", 1, OpCode.TEXT, b"message 1", OpCode.PONG, b"ping"),
        ("echo", 2, OpCode.TEXT, b"message 2", OpCode.PONG, b"ping"),
    ]
    assert ("report", "tester", OpCode.CLOSE, (1000).to_bytes(2, "big")) in records
    assert suite.targets == [
        "/getCaseCount",
        "/runCase?case=1&agent=tester",
        "/runCase?case=2&agent=tester",
        "/updateReports?agent=tester",
    ]


@pytest.mark.asyncio
async def test_run_reports_errors_and_sends_empty_close(capsys):
    suite = FakeSuite(["bad", "echo"])
    async with running(suite) as port:
        assert await run("127.0.0.1", port, "tester") == 2
        records = await suite.collect(4)
    assert ("error", 1, OpCode.CLOSE, b"") in records
    assert ("echo", 2, OpCode.TEXT, b"message 2", OpCode.PONG, b"ping") in records
    assert "Error: Invalid UTF-8" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_with_zero_cases_only_updates_reports():
    suite = FakeSuite([])
    async with running(suite) as port:
        assert await run("127.0.0.1", port, "tester") == 0
        records = await suite.collect(2)
    assert [r[0] for r in records] == ["count", "report"]
    assert suite.targets == ["/getCaseCount", "/updateReports?agent=tester"]


def test_main_fails_when_nothing_listens():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    assert main(["--host", "127.0.0.1", "--port", str(port)]) == 1


def test_main_rejects_bad_port_argument():
    with pytest.raises(SystemExit) as info:
        main(["--port", "nine"])
    assert info.value.code == 2