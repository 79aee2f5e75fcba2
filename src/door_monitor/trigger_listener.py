"""
TCP listener for entry-attempt signals.

The motion sensor bridge (or anything else that can open a socket) sends one
JSON object per line:

    {"source": "sensor"}

Each valid line becomes an EntrySignal on the coordinator's mailbox queue and
is acknowledged with {"status": "ok", ...}. Bad lines get an error reply and
the connection stays open.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from .entry_event import EntrySignal

logger = logging.getLogger(__name__)


def parse_signal_line(line: str) -> EntrySignal:
    """
    Parse one JSON line into an EntrySignal.

    This function is PURE (no sockets, no logging) so it's easy to unit test.
    Raises ValueError on malformed/unexpected input.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")

    try:
        return EntrySignal.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid entry signal: {e.errors()[0]['msg']}") from e


class TriggerTcpListener:
    """
    Asynchronous TCP server that turns JSON lines into EntrySignals.

    Start it on port 0 in tests and read the bound port back from `port`.
    """

    def __init__(self, host: str, port: int, queue: "asyncio.Queue[EntrySignal]"):
        """
        Args:
            host: Host address to bind to
            port: Port to listen on (0 = ephemeral)
            queue: Coordinator mailbox that receives parsed signals
        """
        self.host = host
        self.requested_port = port
        self.queue = queue
        self._server: Optional[asyncio.base_events.Server] = None
        self._client_tasks: set[asyncio.Task] = set()
        self.signals_received = 0

    @property
    def port(self) -> int:
        """Port actually bound (differs from requested_port when that was 0)."""
        if self._server is None:
            return self.requested_port
        return int(self._server.sockets[0].getsockname()[1])

    @property
    def is_running(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        """Bind the server and return; connections are served in the background."""
        self._server = await asyncio.start_server(self._handle_client, self.host, self.requested_port)
        logger.info("Trigger listener started on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        """Stop the server + cancel active client handlers."""
        if self._server is None:
            return

        self._server.close()
        for t in list(self._client_tasks):
            t.cancel()
        await self._server.wait_closed()
        self._server = None

        # Give cancellations a chance to propagate
        await asyncio.sleep(0)
        logger.info("Trigger listener stopped")

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task:
            self._client_tasks.add(task)

        peer = writer.get_extra_info("peername")
        logger.info("Trigger client connected: %s", peer)

        try:
            while True:
                data = await reader.readline()
                if not data:
                    break  # client closed

                line = data.decode("utf-8", errors="replace").strip()
                if not line:
                    continue

                try:
                    entry_signal = parse_signal_line(line)
                except ValueError as e:
                    # Don't crash the listener on bad packets
                    logger.error("Bad trigger message from %s: %s", peer, e)
                    await self._reply(writer, {"status": "error", "message": str(e)})
                    continue

                await self.queue.put(entry_signal)
                self.signals_received += 1
                logger.debug("Entry signal queued from %s (source=%s)", peer, entry_signal.source.value)

                await self._reply(writer, {
                    "status": "ok",
                    "source": entry_signal.source.value,
                    "received_at": datetime.now(timezone.utc).isoformat(),
                })

        except asyncio.CancelledError:
            pass
        except ConnectionError as e:
            logger.warning("Trigger connection error from %s: %s", peer, e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass

            logger.info("Trigger client disconnected: %s", peer)
            if task:
                self._client_tasks.discard(task)

    @staticmethod
    async def _reply(writer: asyncio.StreamWriter, payload: dict) -> None:
        writer.write((json.dumps(payload) + "\n").encode("utf-8"))
        await writer.drain()
