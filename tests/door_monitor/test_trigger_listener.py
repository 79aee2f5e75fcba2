import asyncio
import json

import pytest

from door_monitor.entry_event import TriggerSource
from door_monitor.trigger_listener import TriggerTcpListener, parse_signal_line

from fakes import run


def test_parse_signal_line_defaults_to_sensor():
    assert parse_signal_line("{}").source is TriggerSource.SENSOR
    assert parse_signal_line('{"source": "manual"}').source is TriggerSource.MANUAL


@pytest.mark.parametrize("line", ["not json", "[1, 2]", '{"source": "doorbell"}'])
def test_parse_signal_line_rejects_garbage(line):
    with pytest.raises(ValueError):
        parse_signal_line(line)


def test_listener_queues_signals_and_acks():
    async def scenario():
        queue = asyncio.Queue()
        listener = TriggerTcpListener("127.0.0.1", 0, queue)
        await listener.start()

        reader, writer = await asyncio.open_connection("127.0.0.1", listener.port)
        writer.write(b'{"source": "sensor"}\n')
        writer.write(b"garbage\n")
        writer.write(b'{"source": "manual"}\n')
        await writer.drain()

        replies = [json.loads(await reader.readline()) for _ in range(3)]

        writer.close()
        await writer.wait_closed()
        await listener.stop()

        signals = [queue.get_nowait() for _ in range(queue.qsize())]
        return replies, signals, listener

    replies, signals, listener = run(scenario())

    assert [r["status"] for r in replies] == ["ok", "error", "ok"]
    assert replies[1]["message"].startswith("Invalid JSON")
    assert [s.source for s in signals] == [TriggerSource.SENSOR, TriggerSource.MANUAL]
    assert listener.signals_received == 2
    assert not listener.is_running
