from io import BytesIO
from typing import Any, BinaryIO, Iterable, NamedTuple

from ..exchange import AsyncContext, AsyncListener, Exchange

# --
# ## In-memory bridge
#
# An exchange that lives entirely in memory, it plays the role of the
# container when running handlers in-process and records everything that
# was done to the response.


class SinkEvent(NamedTuple):
	type: str
	data: bytes = b""


class MemoryOutput:
	"""An output sink that records writes and flushes. It can be told to
	fail after a number of writes to simulate a client going away."""

	def __init__(self, failAfter: int | None = None) -> None:
		self.events: list[SinkEvent] = []
		self.failAfter: int | None = failAfter

	@property
	def writes(self) -> list[bytes]:
		return [_.data for _ in self.events if _.type == "write"]

	@property
	def flushes(self) -> int:
		return sum(1 for _ in self.events if _.type == "flush")

	@property
	def data(self) -> bytes:
		return b"".join(self.writes)

	def write(self, data: bytes) -> int:
		if self.failAfter is not None and len(self.writes) >= self.failAfter:
			raise BrokenPipeError("Client closed the connection")
		self.events.append(SinkEvent("write", bytes(data)))
		return len(data)

	def flush(self) -> None:
		self.events.append(SinkEvent("flush"))


class MemoryAsyncContext(AsyncContext):
	"""The async context of a `MemoryExchange`. The `expire`, `fail` and
	`finish` methods emulate what a container notifies listeners of."""

	def __init__(self, exchange: "MemoryExchange") -> None:
		self.exchange: MemoryExchange = exchange
		self.timeout: int | None = None
		self.listeners: list[AsyncListener] = []
		self.completions: int = 0
		self.isComplete: bool = False

	def setTimeout(self, timeout: int) -> None:
		self.timeout = timeout

	def addListener(self, listener: AsyncListener) -> None:
		self.listeners.append(listener)

	def complete(self) -> None:
		self.completions += 1
		if not self.isComplete:
			self.isComplete = True
			for listener in self.listeners:
				listener.onComplete()

	# =========================================================================
	# CONTAINER SIGNALS
	# =========================================================================

	def expire(self) -> None:
		for listener in self.listeners:
			listener.onTimeout()

	def fail(self, error: BaseException | None = None) -> None:
		for listener in self.listeners:
			listener.onError(error)

	def finish(self) -> None:
		"""The container completes the exchange on its own."""
		if not self.isComplete:
			self.isComplete = True
			for listener in self.listeners:
				listener.onComplete()


class MemoryExchange(Exchange):
	def __init__(
		self,
		method: str = "GET",
		uri: str = "/",
		*,
		headers: Iterable[tuple[str, str]] | dict[str, str] | None = None,
		queryString: str | None = None,
		body: bytes = b"",
		scheme: str = "http",
		serverName: str = "localhost",
		serverPort: int = 80,
		remoteAddr: str = "127.0.0.1",
		contentType: str | None = None,
		contentLength: int | None = None,
		characterEncoding: str | None = None,
		attributes: dict[str, Any] | None = None,
		contextPath: str = "",
		output: MemoryOutput | None = None,
	) -> None:
		self._method: str = method
		self._uri: str = uri
		self._headers: list[tuple[str, str]] = list(
			headers.items() if isinstance(headers, dict) else headers or ()
		)
		self._queryString: str | None = queryString
		self._input: BinaryIO = BytesIO(body)
		self._scheme: str = scheme
		self._serverName: str = serverName
		self._serverPort: int = serverPort
		self._remoteAddr: str = remoteAddr
		self._contentType: str | None = contentType
		if contentLength is None:
			contentLength = len(body) if body else -1
		self._contentLength: int = contentLength
		self._characterEncoding: str | None = characterEncoding
		self._attributes: dict[str, Any] = attributes or {}
		self._contextPath: str = contextPath
		# Response side
		self.status: int = 200
		self.headers: list[tuple[str, str]] = []
		self.responseContentType: str | None = None
		self._output: MemoryOutput = output or MemoryOutput()
		self.flushed: int = 0
		self.asyncContext: MemoryAsyncContext | None = None
		# Set by the service when the response completes asynchronously
		self.completion: Any = None

	# =========================================================================
	# REQUEST
	# =========================================================================

	@property
	def serverPort(self) -> int:
		return self._serverPort

	@property
	def serverName(self) -> str:
		return self._serverName

	@property
	def remoteAddr(self) -> str:
		return self._remoteAddr

	@property
	def uri(self) -> str:
		return self._uri

	@property
	def queryString(self) -> str | None:
		return self._queryString

	@property
	def scheme(self) -> str:
		return self._scheme

	@property
	def method(self) -> str:
		return self._method

	def headerNames(self) -> Iterable[str]:
		seen: list[str] = []
		for name, _ in self._headers:
			if name not in seen:
				seen.append(name)
		return seen

	def headerValues(self, name: str) -> Iterable[str]:
		key = name.lower()
		return [v for k, v in self._headers if k.lower() == key]

	@property
	def contentType(self) -> str | None:
		return self._contentType

	@property
	def contentLength(self) -> int:
		return self._contentLength

	@property
	def characterEncoding(self) -> str | None:
		return self._characterEncoding

	def attribute(self, name: str) -> Any:
		return self._attributes.get(name)

	@property
	def input(self) -> BinaryIO:
		return self._input

	@property
	def contextPath(self) -> str:
		return self._contextPath

	# =========================================================================
	# RESPONSE
	# =========================================================================

	def setStatus(self, status: int) -> None:
		self.status = status

	def setHeader(self, name: str, value: str) -> None:
		key = name.lower()
		self.headers = [_ for _ in self.headers if _[0].lower() != key]
		self.headers.append((name, value))

	def addHeader(self, name: str, value: str) -> None:
		self.headers.append((name, value))

	def setContentType(self, contentType: str) -> None:
		self.responseContentType = contentType

	@property
	def output(self) -> MemoryOutput:
		return self._output

	def flushBuffer(self) -> None:
		self.flushed += 1

	def startAsync(self) -> MemoryAsyncContext:
		if self.asyncContext is None:
			self.asyncContext = MemoryAsyncContext(self)
		return self.asyncContext

	# =========================================================================
	# API
	# =========================================================================

	def header(self, name: str) -> list[str]:
		"""Returns the values of the given response header."""
		key = name.lower()
		return [v for k, v in self.headers if k.lower() == key]

	@property
	def completions(self) -> int:
		return self.asyncContext.completions if self.asyncContext else 0

	def __str__(self) -> str:
		return f"MemoryExchange({self._method} {self._uri} {self.status} {self.headers})"


# EOF
