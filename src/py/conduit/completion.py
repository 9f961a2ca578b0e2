import asyncio
from concurrent.futures import Future
from enum import Enum
from typing import Any, AsyncIterator, Callable

from .body import BodyWriter
from .config import ASYNC_TIMEOUT
from .exchange import AsyncContext, AsyncListener, Exchange
from .model import WriteFailure
from .utils.io import DEFAULT_ENCODING
from .utils.logging import debug, event, exception, logged, warning
from .utils.loop import resolve

__doc__ = """
Completion of responses whose body is produced over time. The exchange is
suspended, a drain task writes the chunks as they come and the exchange is
explicitly completed once, whichever of the end of the stream, a failure or
a container signal comes first.
"""


class CompletionState(Enum):
	Suspended = 0
	Draining = 1
	Completed = 2
	Aborted = 3


TERMINAL: tuple[CompletionState, ...] = (
	CompletionState.Completed,
	CompletionState.Aborted,
)


class AsyncCompletion(AsyncListener):
	"""Drives an asynchronous body to completion on an event loop. Every
	state transition runs on that loop, container notifications coming
	from other threads are marshalled onto it."""

	def __init__(
		self,
		exchange: Exchange,
		stream: AsyncIterator[Any],
		*,
		loop: asyncio.AbstractEventLoop | None = None,
		encoding: str = DEFAULT_ENCODING,
		timeout: int = ASYNC_TIMEOUT,
	) -> None:
		self.exchange: Exchange = exchange
		self.stream: AsyncIterator[Any] = stream
		self.encoding: str = encoding
		self.timeout: int = timeout
		self.state: CompletionState = CompletionState.Suspended
		self.loop: asyncio.AbstractEventLoop = resolve(loop)
		self.context: AsyncContext | None = None
		self.task: asyncio.Task[None] | None = None
		self.failure: BaseException | None = None
		self.reason: str | None = None
		self.chunks: int = 0
		# Resolved with the terminal state once the stream is closed
		self.result: Future[CompletionState] = Future()
		self._isContainerComplete: bool = False
		self._isStreamClosed: bool = False

	@property
	def isTerminal(self) -> bool:
		return self.state in TERMINAL

	# =========================================================================
	# LIFECYCLE
	# =========================================================================

	def start(self) -> "AsyncCompletion":
		"""Suspends the exchange and schedules the drain."""
		context = self.exchange.startAsync()
		context.setTimeout(self.timeout)
		context.addListener(self)
		self.context = context
		event("AsyncStarted", Timeout=self.timeout)
		if self._isOnLoop():
			self._spawn()
		else:
			self.loop.call_soon_threadsafe(self._spawn)
		return self

	async def join(self) -> CompletionState:
		"""Waits for the drain to finish, raising its failure if any."""
		state = await asyncio.wrap_future(self.result)
		if self.failure is not None:
			raise self.failure
		return state

	def wait(self, timeout: float | None = None) -> CompletionState:
		"""Blocking version of `join`, for container threads."""
		state = self.result.result(timeout)
		if self.failure is not None:
			raise self.failure
		return state

	def abort(self, reason: str = "abort") -> bool:
		"""Aborts the response, cancelling the drain. This is a no-op once
		a terminal state is reached. Called from another thread, the abort
		is scheduled on the loop and this returns whether it was pending."""
		if not self._isOnLoop() and self.loop.is_running():
			if self.isTerminal:
				return False
			self._signal(lambda: self.abort(reason))
			return True
		previous = self.state
		if not self._terminate(CompletionState.Aborted):
			return False
		self.reason = reason
		warning("Async response aborted", Reason=reason, Chunks=self.chunks)
		# A drain that has not started yet closes the stream on its own, and
		# a drain aborting itself on failure carries on to close it.
		task = self.task
		if (
			previous is CompletionState.Draining
			and task
			and not task.done()
			and task is not self._currentTask()
		):
			task.cancel()
		return True

	# =========================================================================
	# LISTENER
	# =========================================================================

	def onTimeout(self) -> None:
		self._signal(lambda: self.abort("timeout"))

	def onError(self, error: BaseException | None = None) -> None:
		self._signal(lambda: self.abort(f"error: {error}" if error else "error"))

	def onComplete(self) -> None:
		def complete() -> None:
			# The container is already done, it must not be completed again
			if not self.isTerminal:
				self._isContainerComplete = True
				self.abort("completed by container")

		self._signal(complete)

	# =========================================================================
	# DRAIN
	# =========================================================================

	async def drain(self) -> None:
		if self.isTerminal:
			await self._closeStream()
			self._finish()
			return
		self.state = CompletionState.Draining
		writer = BodyWriter(self.exchange.output, encoding=self.encoding)
		try:
			async for chunk in self.stream:
				writer.write(chunk)
				self.chunks += 1
				logged(debug) and debug("Async chunk written", Count=self.chunks)
			try:
				self.exchange.flushBuffer()
			except OSError as e:
				raise WriteFailure(f"Could not flush response: {e}") from e
			if self._terminate(CompletionState.Completed):
				event("AsyncCompleted", Chunks=self.chunks)
		except asyncio.CancelledError:
			if self.state is not CompletionState.Aborted:
				# Cancelled from outside, ie. the loop is shutting down
				self.abort("cancelled")
				raise
		except Exception as e:
			self.failure = e
			exception(e, "Async response failed")
			self.abort(f"failure: {e.__class__.__name__}")
		finally:
			await self._closeStream()
			self._finish()

	# =========================================================================
	# HELPERS
	# =========================================================================

	def _spawn(self) -> None:
		self.task = self.loop.create_task(self.drain())

	def _terminate(self, state: CompletionState) -> bool:
		"""Moves to the given terminal state, completing the exchange. This
		is where the exactly-once completion is guaranteed."""
		if self.isTerminal:
			return False
		self.state = state
		if self.context and not self._isContainerComplete:
			self.context.complete()
		return True

	async def _closeStream(self) -> None:
		if self._isStreamClosed:
			return
		self._isStreamClosed = True
		aclose = getattr(self.stream, "aclose", None)
		if aclose:
			try:
				await aclose()
			except Exception as e:
				exception(e, "Async body could not be closed")

	def _finish(self) -> None:
		if not self.result.done():
			self.result.set_result(self.state)

	def _currentTask(self) -> "asyncio.Task[Any] | None":
		try:
			return asyncio.current_task()
		except RuntimeError:
			return None

	def _isOnLoop(self) -> bool:
		try:
			return asyncio.get_running_loop() is self.loop
		except RuntimeError:
			return False

	def _signal(self, action: Callable[[], Any]) -> None:
		if self._isOnLoop():
			action()
		elif not self.loop.is_closed():
			self.loop.call_soon_threadsafe(action)
		else:
			warning(
				"Async signal received after loop closed", State=self.state.name
			)


def complete(
	exchange: Exchange,
	stream: AsyncIterator[Any],
	*,
	loop: asyncio.AbstractEventLoop | None = None,
	encoding: str = DEFAULT_ENCODING,
) -> AsyncCompletion:
	"""Starts the asynchronous completion of the exchange with the given
	stream as body."""
	return AsyncCompletion(exchange, stream, loop=loop, encoding=encoding).start()


# EOF
