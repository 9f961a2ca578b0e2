import asyncio
import time

from conduit.bridge.memory import MemoryExchange, MemoryOutput, SinkEvent
from conduit.channel import Channel
from conduit.completion import AsyncCompletion, CompletionState
from conduit.model import Response, UnsupportedBodyShape, WriteFailure
from conduit.response import finalize

WRITE = "write"
FLUSH = SinkEvent("flush")


class Producer:
	"""An async generator wrapper that records whether it was closed."""

	def __init__(self, *chunks, delay: float = 0.0, fail: Exception | None = None):
		self.chunks = chunks
		self.delay = delay
		self.fail = fail
		self.closed: bool = False

	async def stream(self):
		try:
			for chunk in self.chunks:
				if self.delay:
					await asyncio.sleep(self.delay)
				yield chunk
			if self.fail:
				raise self.fail
		finally:
			self.closed = True


async def until(predicate, timeout: float = 1.0) -> None:
	deadline = time.monotonic() + timeout
	while not predicate():
		assert time.monotonic() < deadline, "Condition not reached in time"
		await asyncio.sleep(0.001)


def test_stream_completes_once():
	async def main():
		producer = Producer("a", "b")
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(status=200, body=producer.stream()))
		assert isinstance(completion, AsyncCompletion)
		assert await completion.join() is CompletionState.Completed
		assert exchange.output.events == [
			SinkEvent(WRITE, b"a"),
			FLUSH,
			SinkEvent(WRITE, b"b"),
			FLUSH,
		]
		assert exchange.completions == 1
		assert exchange.flushed == 1
		assert exchange.asyncContext.timeout == 0
		assert completion.chunks == 2
		assert producer.closed

	asyncio.run(main())


def test_stream_order_with_delays():
	async def main():
		chunks = [str(i) for i in range(20)]
		producer = Producer(*chunks, delay=0.002)
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=producer.stream()))
		await completion.join()
		assert exchange.output.writes == [_.encode() for _ in chunks]
		assert exchange.completions == 1

	asyncio.run(main())


def test_stream_chunk_variants():
	async def main():
		producer = Producer("a", b"b", ["c", 1])
		exchange = MemoryExchange()
		await finalize(exchange, Response(body=producer.stream())).join()
		assert exchange.output.data == b"abc1"

	asyncio.run(main())


def test_timeout_after_first_chunk():
	async def main():
		channel: Channel[str] = Channel()
		exchange = MemoryExchange()
		completion = finalize(exchange, {"status": 200, "body": channel})
		await channel.put("a")
		await until(lambda: exchange.output.writes)
		exchange.asyncContext.expire()
		assert await completion.join() is CompletionState.Aborted
		assert completion.reason == "timeout"
		assert exchange.output.data == b"a"
		assert channel.isClosed
		assert exchange.completions == 1
		# The producer is told it can stop, and a late end is a no-op
		assert await channel.put("b") is False
		assert channel.close() is False
		exchange.asyncContext.expire()
		await asyncio.sleep(0.01)
		assert exchange.completions == 1
		assert exchange.flushed == 0

	asyncio.run(main())


def test_error_signal_closes_producer():
	async def main():
		producer = Producer("a", "b", "c", delay=0.05)
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=producer.stream()))
		await until(lambda: exchange.output.writes)
		exchange.asyncContext.fail(ConnectionResetError("reset"))
		assert await completion.join() is CompletionState.Aborted
		assert exchange.output.data == b"a"
		assert producer.closed
		assert exchange.completions == 1

	asyncio.run(main())


def test_write_failure_aborts():
	async def main():
		producer = Producer("a", "b", "c")
		exchange = MemoryExchange(output=MemoryOutput(failAfter=1))
		completion = finalize(exchange, Response(body=producer.stream()))
		try:
			await completion.join()
		except WriteFailure:
			pass
		else:
			raise AssertionError("The write failure should be raised")
		assert completion.state is CompletionState.Aborted
		assert exchange.output.data == b"a"
		assert producer.closed
		assert exchange.completions == 1

	asyncio.run(main())


def test_producer_failure_aborts():
	async def main():
		producer = Producer("a", fail=RuntimeError("producer failed"))
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=producer.stream()))
		try:
			await completion.join()
		except RuntimeError as e:
			assert str(e) == "producer failed"
		else:
			raise AssertionError("The producer failure should be raised")
		assert isinstance(completion.failure, RuntimeError)
		assert exchange.output.data == b"a"
		assert exchange.completions == 1

	asyncio.run(main())


def test_unsupported_chunk_aborts():
	async def main():
		producer = Producer("a", 42, "b")
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=producer.stream()))
		try:
			await completion.join()
		except UnsupportedBodyShape:
			pass
		else:
			raise AssertionError("Unsupported chunks should fail")
		assert exchange.output.data == b"a"
		assert exchange.completions == 1

	asyncio.run(main())


def test_container_completion_is_not_repeated():
	async def main():
		channel: Channel[str] = Channel()
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=channel))
		await channel.put("a")
		await until(lambda: exchange.output.writes)
		exchange.asyncContext.finish()
		assert await completion.join() is CompletionState.Aborted
		assert exchange.completions == 0
		assert channel.isClosed

	asyncio.run(main())


def test_abort_before_drain():
	async def main():
		producer = Producer("a")
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=producer.stream()))
		# The drain task has not run yet
		assert completion.state is CompletionState.Suspended
		assert completion.abort("early")
		assert not completion.abort("again")
		assert await completion.join() is CompletionState.Aborted
		assert exchange.output.events == []
		assert exchange.completions == 1

	asyncio.run(main())


def test_signals_after_completion_are_ignored():
	async def main():
		exchange = MemoryExchange()
		completion = finalize(exchange, Response(body=Producer("a").stream()))
		await completion.join()
		exchange.asyncContext.expire()
		exchange.asyncContext.fail()
		exchange.asyncContext.finish()
		await asyncio.sleep(0.01)
		assert completion.state is CompletionState.Completed
		assert exchange.completions == 1

	asyncio.run(main())


def test_background_loop_from_container_thread():
	channel: Channel[str] = Channel()
	exchange = MemoryExchange()
	completion = finalize(exchange, Response(body=channel))
	assert completion is not None
	assert channel.offer("a")
	deadline = time.monotonic() + 1.0
	while not exchange.output.writes:
		assert time.monotonic() < deadline, "Chunk not written in time"
		time.sleep(0.001)
	exchange.asyncContext.expire()
	assert completion.wait(1.0) is CompletionState.Aborted
	assert exchange.output.data == b"a"
	assert exchange.completions == 1
	assert channel.offer("b") is False


def test_abort_from_container_thread():
	channel: Channel[str] = Channel()
	exchange = MemoryExchange()
	completion = finalize(exchange, Response(body=channel))
	assert completion is not None
	assert channel.offer("a")
	deadline = time.monotonic() + 1.0
	while not exchange.output.writes:
		assert time.monotonic() < deadline, "Chunk not written in time"
		time.sleep(0.001)
	assert completion.abort("client gone")
	assert completion.wait(1.0) is CompletionState.Aborted
	assert completion.reason == "client gone"
	assert not completion.abort("again")
	assert exchange.output.data == b"a"
	assert exchange.completions == 1
	assert channel.isClosed
	assert channel.offer("b") is False


def test_background_loop_completes():
	channel: Channel[str] = Channel()
	exchange = MemoryExchange()
	completion = finalize(exchange, Response(body=channel))
	for chunk in ("a", "b", "c"):
		channel.offer(chunk)
	channel.close()
	assert completion.wait(1.0) is CompletionState.Completed
	assert exchange.output.data == b"abc"
	assert exchange.completions == 1
	assert exchange.flushed == 1


# EOF
