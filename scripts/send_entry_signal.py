#!/usr/bin/env python3
"""
Send entry-attempt signals to the Door Monitor trigger listener.

Stands in for the motion sensor bridge when testing on a desk.

Usage:
    python scripts/send_entry_signal.py [source] [count]

Examples:
    python scripts/send_entry_signal.py
    python scripts/send_entry_signal.py manual
    python scripts/send_entry_signal.py sensor 5     # burst: only one attempt should run
"""

import json
import socket
import sys


def send_signals(
    source: str = "sensor",
    count: int = 1,
    host: str = "localhost",
    port: int = 8127
) -> None:
    """Send `count` signals back-to-back over one connection and print the acks."""

    message = (json.dumps({"source": source}) + "\n").encode("utf-8")

    print(f"Sending {count} {source} signal(s) to {host}:{port}")

    try:
        with socket.create_connection((host, port)) as sock:
            sock.sendall(message * count)

            # One ack line per signal
            reader = sock.makefile("r", encoding="utf-8")
            for _ in range(count):
                print(f"Response: {reader.readline().strip()}")

    except ConnectionRefusedError:
        print("ERROR: Could not connect to the trigger listener.")
        print("Make sure the monitor is running (python -m door_monitor.main --http-serve).")
        sys.exit(1)
    except OSError as e:
        print(f"ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    source = sys.argv[1] if len(sys.argv) > 1 else "sensor"
    count = int(sys.argv[2]) if len(sys.argv) > 2 else 1

    send_signals(source=source, count=count)
