import inspect
import os
from collections.abc import Iterator, Mapping
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import (
	Any,
	AsyncIterator,
	BinaryIO,
	Callable,
	Iterable,
	NamedTuple,
	Sequence,
	TypeAlias,
	Union,
)

from .utils.io import describe

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class ConduitError(Exception):
	"""Base class for the errors raised while bridging an exchange."""

	def __init__(self, message: str):
		super().__init__(message)
		self.message: str = message


class NullResponse(ConduitError):
	"""No response descriptor was given to the finalizer."""

	def __init__(self, message: str = "Null response given"):
		super().__init__(message)


class HandlerReturnedNothing(NullResponse):
	"""The handler did not produce a response descriptor."""

	def __init__(self, message: str = "Handler returned nothing"):
		super().__init__(message)


class UnsupportedBodyShape(ConduitError, ValueError):
	"""The body value matches none of the known body variants."""

	def __init__(self, value: Any):
		self.shape: str = describe(value)
		super().__init__(f"Unrecognized body: {self.shape}")


class WriteFailure(ConduitError, IOError):
	"""An I/O error happened while writing a body to the output sink."""


# -----------------------------------------------------------------------------
#
# REQUEST
#
# -----------------------------------------------------------------------------


class Scheme(Enum):
	HTTP = "http"
	HTTPS = "https"
	Other = "other"

	@staticmethod
	def Parse(value: str | None) -> "Scheme":
		name = (value or "").lower()
		if name == "http":
			return Scheme.HTTP
		elif name == "https":
			return Scheme.HTTPS
		else:
			return Scheme.Other


class RequestSnapshot(NamedTuple):
	"""An immutable copy of the inbound request, as given to handlers."""

	serverPort: int
	serverName: str
	remoteAddr: str
	uri: str
	queryString: str | None
	scheme: Scheme
	method: str
	headers: Mapping[str, str]
	contentType: str | None
	contentLength: int | None
	characterEncoding: str | None
	clientCert: Any
	body: BinaryIO
	# Legacy fields, merged in by the service adapter
	exchange: Any = None
	service: Any = None
	contextPath: str | None = None

	def header(self, name: str) -> str | None:
		return self.headers.get(name.lower())


# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class BodyEmpty(NamedTuple):
	"""No body, nothing gets written."""


class BodyText(NamedTuple):
	"""A complete body, as text or bytes."""

	value: str | bytes


class BodySequence(NamedTuple):
	"""A finite sequence of chunks, each written in its string form."""

	chunks: Iterable[Any]


class BodySource(NamedTuple):
	"""An open readable stream, owned by the writer until exhausted."""

	source: BinaryIO


class BodyFile(NamedTuple):
	"""A reference to a file whose contents are the body."""

	path: Path


class BodyAsyncStream(NamedTuple):
	"""Chunks produced over time, drained by the async completion."""

	stream: AsyncIterator[Any]


class BodyCallback(NamedTuple):
	"""A function given the output sink, responsible for writing and
	flushing."""

	callback: Callable[[Any], Any]


TBody: TypeAlias = Union[
	BodyEmpty,
	BodyText,
	BodySequence,
	BodySource,
	BodyFile,
	BodyAsyncStream,
	BodyCallback,
]

BODY_VARIANTS: tuple[type, ...] = (
	BodyEmpty,
	BodyText,
	BodySequence,
	BodySource,
	BodyFile,
	BodyAsyncStream,
	BodyCallback,
)

EMPTY: BodyEmpty = BodyEmpty()


class Body:
	"""Contains helpers to work with bodies."""

	@staticmethod
	def Classify(value: Any) -> TBody:
		"""Returns the body variant matching the runtime shape of `value`,
		raising `UnsupportedBodyShape` when there is none."""
		if value is None:
			return EMPTY
		elif isinstance(value, BODY_VARIANTS):
			return value
		elif (
			isinstance(value, str)
			or isinstance(value, bytes)
			or isinstance(value, bytearray)
			or isinstance(value, memoryview)
		):
			return BodyText(value) if len(value) else EMPTY
		elif isinstance(value, os.PathLike):
			return BodyFile(Path(value))
		# Async readers (ie. `asyncio.StreamReader`) also have a `read`
		elif hasattr(value, "__aiter__"):
			return BodyAsyncStream(value)
		elif callable(getattr(value, "read", None)):
			return BodySource(value)
		elif (
			isinstance(value, list)
			or isinstance(value, tuple)
			or inspect.isgenerator(value)
			or isinstance(value, Iterator)
		):
			return BodySequence(value)
		elif callable(value):
			return BodyCallback(value)
		else:
			raise UnsupportedBodyShape(value)


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------

THeaderValue: TypeAlias = str | bytes | Sequence[str] | int | None


class Response(NamedTuple):
	"""A response descriptor, as returned by handlers."""

	status: int | None = None
	headers: Mapping[str, THeaderValue] = MappingProxyType({})
	body: Any = None

	@staticmethod
	def Make(value: Any) -> "Response | None":
		"""Coerces a handler result (a `Response` or a mapping with
		`status`, `headers` and `body` keys) into a `Response`."""
		if value is None or isinstance(value, Response):
			return value
		elif isinstance(value, Mapping):
			return Response(
				status=value.get("status"),
				headers=value.get("headers") or MappingProxyType({}),
				body=value.get("body"),
			)
		else:
			raise ValueError(f"Unsupported response: {describe(value)}")


# EOF
