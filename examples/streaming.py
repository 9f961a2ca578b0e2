"""
Streaming Example

This demonstrates asynchronous bodies: one produced by an async generator,
and one fed from a worker thread through a channel.
Features shown:
- Async generators as response bodies
- Channels fed from another thread
- Exactly-once completion of the exchange

Usage:
    python streaming.py
"""

import asyncio
import threading
import time

from conduit import Channel, RequestSnapshot, Response, service
from conduit.utils.logging import info


async def ticks(count: int):
	for i in range(count):
		await asyncio.sleep(0.1)
		yield f"data: tick {i}\n\n"


def events(request: RequestSnapshot) -> Response:
	return Response(
		status=200, headers={"Content-Type": "text/event-stream"}, body=ticks(5)
	)


def worker(request: RequestSnapshot) -> Response:
	channel: Channel[str] = Channel()

	def produce() -> None:
		for i in range(5):
			time.sleep(0.1)
			channel.offer(f"line {i}\n")
		channel.close()

	threading.Thread(target=produce, daemon=True).start()
	return Response(status=200, headers={"Content-Type": "text/plain"}, body=channel)


if __name__ == "__main__":
	for handler in (events, worker):
		exchange = service(handler).request("GET", f"/{handler.__name__}")
		info(
			"Streamed",
			Handler=handler.__name__,
			Chunks=len(exchange.output.writes),
			Completions=exchange.completions,
		)

# EOF
