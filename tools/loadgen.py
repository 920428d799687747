"""Drive mixed POST/GET traffic at a running file server.

Every client owns one file: it writes the file, reads it back, and repeats,
opening one HTTP/1.0 connection per request. The report counts outcomes per
method and status, flags read-backs that do not match the last write, and
records how many connections the clients held open at once. Set against the
server's own admission peak, that shows the bound holding while the clients
oversubscribe it.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import time
from collections import Counter
from dataclasses import dataclass, field


@dataclass(slots=True)
class LoadReport:
    outcomes: Counter[str] = field(default_factory=Counter)
    mismatches: int = 0
    failures: int = 0
    peak_in_flight: int = 0
    elapsed_secs: float = 0.0

    @property
    def completed(self) -> int:
        return sum(self.outcomes.values())

    def as_dict(self) -> dict[str, object]:
        return {
            "completed": self.completed,
            "outcomes": dict(self.outcomes),
            "mismatches": self.mismatches,
            "failures": self.failures,
            "peak_in_flight": self.peak_in_flight,
            "elapsed_secs": round(self.elapsed_secs, 3),
        }


class _InFlightGauge:
    def __init__(self) -> None:
        self.current = 0
        self.peak = 0

    def __enter__(self) -> "_InFlightGauge":
        self.current += 1
        self.peak = max(self.peak, self.current)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.current -= 1


async def send_request(
    host: str,
    port: int,
    method: str,
    path: str,
    body: bytes = b"",
    *,
    timeout: float,
) -> tuple[int, bytes]:
    """Send one request and return the status code and response body."""
    reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    try:
        head = f"{method} {path} HTTP/1.0\r\nContent-Length: {len(body)}\r\n\r\n"
        writer.write(head.encode("ascii") + body)
        await writer.drain()
        raw = await asyncio.wait_for(reader.read(), timeout=timeout)
    finally:
        writer.close()
        await writer.wait_closed()

    status_line, _, rest = raw.partition(b"\r\n")
    parts = status_line.split(b" ", 2)
    if len(parts) < 2 or not parts[0].startswith(b"HTTP/") or not parts[1].isdigit():
        raise ValueError(f"Invalid status line: {status_line!r}")
    return int(parts[1]), rest.partition(b"\r\n\r\n")[2]


async def run_mixed_load(
    host: str,
    port: int,
    *,
    clients: int,
    rounds: int,
    payload_size: int = 64,
    timeout_secs: float = 5.0,
) -> LoadReport:
    report = LoadReport()
    gauge = _InFlightGauge()

    async def client(index: int) -> None:
        path = f"/load/client-{index}.txt"
        for round_number in range(rounds):
            payload = f"{index}:{round_number}:".encode("ascii").ljust(payload_size, b".")
            for method, body in (("POST", payload), ("GET", b"")):
                try:
                    with gauge:
                        status, response_body = await send_request(
                            host, port, method, path, body, timeout=timeout_secs
                        )
                except (OSError, ValueError, asyncio.TimeoutError):
                    report.failures += 1
                    continue
                report.outcomes[f"{method} {status}"] += 1
                if method == "GET" and response_body != payload:
                    report.mismatches += 1

    started = time.perf_counter()
    await asyncio.gather(*(client(index) for index in range(clients)))
    report.elapsed_secs = time.perf_counter() - started
    report.peak_in_flight = gauge.peak
    return report


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run mixed POST/GET load against a file server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    parser.add_argument("--clients", type=int, default=30)
    parser.add_argument("--rounds", type=int, default=10)
    parser.add_argument("--payload-size", type=int, default=64)
    parser.add_argument("--timeout", type=float, default=5.0)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    report = asyncio.run(
        run_mixed_load(
            args.host,
            args.port,
            clients=args.clients,
            rounds=args.rounds,
            payload_size=args.payload_size,
            timeout_secs=args.timeout,
        )
    )
    print(json.dumps(report.as_dict(), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
