from abc import ABC, abstractmethod
from typing import Any, BinaryIO, Iterable, Protocol

from mypy_extensions import trait

__doc__ = """
The contract a container exposes for one in-flight request/response pair.
Containers implement `Exchange` (and `AsyncContext` for suspendable
responses), conduit never reaches for ambient state and always receives
the exchange explicitly.
"""

# Attribute under which containers expose the client certificate chain.
CLIENT_CERT_ATTRIBUTE: str = "conduit.tls.client_certificates"


class Sink(Protocol):
	"""The output byte channel of an exchange."""

	def write(self, data: bytes) -> Any:
		...

	def flush(self) -> None:
		...


@trait
class AsyncListener:
	"""Receives the lifecycle notifications of a suspended exchange."""

	def onComplete(self) -> None:
		pass

	def onTimeout(self) -> None:
		pass

	def onError(self, error: BaseException | None = None) -> None:
		pass


class AsyncContext(ABC):
	"""Handle on an exchange taken off the synchronous completion path."""

	@abstractmethod
	def setTimeout(self, timeout: int) -> None:
		"""Sets the timeout in milliseconds, `0` disables it."""

	@abstractmethod
	def addListener(self, listener: AsyncListener) -> None:
		...

	@abstractmethod
	def complete(self) -> None:
		"""Explicitly finishes the exchange."""


class Exchange(ABC):
	"""A container-owned HTTP exchange. The request side is read through
	accessors, the response side is updated through setters and the output
	sink."""

	# =========================================================================
	# REQUEST
	# =========================================================================

	@property
	@abstractmethod
	def serverPort(self) -> int:
		...

	@property
	@abstractmethod
	def serverName(self) -> str:
		...

	@property
	@abstractmethod
	def remoteAddr(self) -> str:
		...

	@property
	@abstractmethod
	def uri(self) -> str:
		...

	@property
	@abstractmethod
	def queryString(self) -> str | None:
		...

	@property
	@abstractmethod
	def scheme(self) -> str:
		...

	@property
	@abstractmethod
	def method(self) -> str:
		...

	@abstractmethod
	def headerNames(self) -> Iterable[str]:
		...

	@abstractmethod
	def headerValues(self, name: str) -> Iterable[str]:
		"""Returns all the values for the header, in their original order."""

	@property
	@abstractmethod
	def contentType(self) -> str | None:
		...

	@property
	@abstractmethod
	def contentLength(self) -> int:
		"""Returns the raw content length, negative when unknown."""

	@property
	@abstractmethod
	def characterEncoding(self) -> str | None:
		...

	@abstractmethod
	def attribute(self, name: str) -> Any:
		...

	@property
	@abstractmethod
	def input(self) -> BinaryIO:
		...

	@property
	@abstractmethod
	def contextPath(self) -> str:
		...

	# =========================================================================
	# RESPONSE
	# =========================================================================

	@abstractmethod
	def setStatus(self, status: int) -> None:
		...

	@abstractmethod
	def setHeader(self, name: str, value: str) -> None:
		...

	@abstractmethod
	def addHeader(self, name: str, value: str) -> None:
		...

	@abstractmethod
	def setContentType(self, contentType: str) -> None:
		...

	@property
	@abstractmethod
	def output(self) -> Sink:
		...

	@abstractmethod
	def flushBuffer(self) -> None:
		"""Flushes the output, committing the response."""

	@abstractmethod
	def startAsync(self) -> AsyncContext:
		...


# EOF
