import asyncio
from collections.abc import Mapping
from typing import Any, Callable

from .bridge.memory import MemoryExchange
from .completion import AsyncCompletion
from .exchange import Exchange
from .model import HandlerReturnedNothing, RequestSnapshot, Response
from .request import build, merge
from .response import finalize
from .utils.io import DEFAULT_ENCODING
from .utils.logging import error

THandler = Callable[[RequestSnapshot], Response | Mapping[str, Any] | None]


class Service:
	"""Turns a handler taking a request snapshot and returning a response
	descriptor into something a container can call with an exchange."""

	def __init__(
		self,
		handler: THandler,
		*,
		name: str | None = None,
		loop: asyncio.AbstractEventLoop | None = None,
		encoding: str = DEFAULT_ENCODING,
	) -> None:
		self.handler: THandler = handler
		self.name: str = name or getattr(handler, "__name__", "service")
		self.loop: asyncio.AbstractEventLoop | None = loop
		self.encoding: str = encoding

	def __call__(self, exchange: Exchange) -> AsyncCompletion | None:
		return self.process(exchange)

	def process(self, exchange: Exchange) -> AsyncCompletion | None:
		"""Processes the exchange, returning the `AsyncCompletion` when the
		response body is asynchronous."""
		request = merge(build(exchange), exchange, self)
		response = self.handler(request)
		if response is None:
			error(
				"Handler returned nothing",
				"NORESPONSE",
				Service=self.name,
				Method=request.method,
				URI=request.uri,
			)
			raise HandlerReturnedNothing()
		return finalize(exchange, response, loop=self.loop, encoding=self.encoding)

	# =========================================================================
	# IN-PROCESS
	# =========================================================================

	def request(
		self,
		method: str = "GET",
		uri: str = "/",
		*,
		timeout: float | None = None,
		**options: Any,
	) -> MemoryExchange:
		"""Runs a request through the service using an in-memory exchange,
		waiting for asynchronous responses to complete. Must not be called
		from the loop draining the responses."""
		exchange = MemoryExchange(method, uri, **options)
		exchange.completion = self.process(exchange)
		if exchange.completion:
			exchange.completion.wait(timeout)
		return exchange

	async def requestAsync(
		self,
		method: str = "GET",
		uri: str = "/",
		**options: Any,
	) -> MemoryExchange:
		"""Same as `request`, from a coroutine."""
		exchange = MemoryExchange(method, uri, **options)
		exchange.completion = self.process(exchange)
		if exchange.completion:
			await exchange.completion.join()
		return exchange

	def __repr__(self) -> str:
		return f"(Service {self.name})"


def service(handler: THandler, **options: Any) -> Service:
	"""Creates a service out of the given handler."""
	return Service(handler, **options)


# EOF
