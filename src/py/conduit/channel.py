import asyncio
import threading
from typing import Generic, TypeVar

from .utils.io import EOS, Control
from .utils.logging import debug, logged

T = TypeVar("T")


class Channel(Generic[T]):
	"""An asynchronous body fed by a producer over time. Values are
	delivered in the order they were put, and the channel ends once closed
	and drained. Producers running on other threads use `offer`, the
	consumer iterates with `async for`."""

	__slots__ = ["queue", "loop", "_isClosed", "_isDone", "_lock"]

	def __init__(self) -> None:
		self.queue: asyncio.Queue[T | Control] = asyncio.Queue()
		# The loop of the consumer, bound on first iteration
		self.loop: asyncio.AbstractEventLoop | None = None
		self._isClosed: bool = False
		self._isDone: bool = False
		self._lock = threading.Lock()

	@property
	def isClosed(self) -> bool:
		return self._isClosed

	async def put(self, value: T) -> bool:
		"""Puts a value from a coroutine running on the consumer's loop."""
		return self.offer(value)

	def offer(self, value: T) -> bool:
		"""Puts a value from any thread, returns False when the channel is
		closed and the value was dropped."""
		if value is None or value is EOS:
			raise ValueError(f"Channel values can't be {value}")
		with self._lock:
			if self._isClosed:
				return False
			self._enqueue(value)
			return True

	def close(self) -> bool:
		"""Closes the channel, values already put will still be delivered.
		Returns False if the channel was already closed."""
		with self._lock:
			if self._isClosed:
				return False
			self._isClosed = True
			self._enqueue(EOS)
		logged(debug) and debug("Channel closed", Pending=self.queue.qsize())
		return True

	async def aclose(self) -> None:
		self.close()

	def _enqueue(self, value: T | Control) -> None:
		# NOTE: The queue is not thread safe, once a consumer is bound we
		# hop on its loop unless we're already running on it.
		loop = self.loop
		if loop is None or loop.is_closed():
			self.queue.put_nowait(value)
			return
		try:
			running = asyncio.get_running_loop()
		except RuntimeError:
			running = None
		if running is loop:
			self.queue.put_nowait(value)
		else:
			loop.call_soon_threadsafe(self.queue.put_nowait, value)

	def __aiter__(self) -> "Channel[T]":
		with self._lock:
			if self.loop is None:
				self.loop = asyncio.get_running_loop()
		return self

	async def __anext__(self) -> T:
		if self._isDone:
			raise StopAsyncIteration
		value = await self.queue.get()
		if value is EOS:
			self._isDone = True
			raise StopAsyncIteration
		return value  # type: ignore[return-value]


# EOF
