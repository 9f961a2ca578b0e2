import asyncio
from collections.abc import Mapping
from typing import Any

from .body import BodyWriter
from .completion import AsyncCompletion, complete
from .exchange import Exchange
from .model import (
	Body,
	BodyAsyncStream,
	NullResponse,
	Response,
	THeaderValue,
	UnsupportedBodyShape,
	WriteFailure,
)
from .utils.io import DEFAULT_ENCODING
from .utils.logging import debug, logged, warning


def setStatus(exchange: Exchange, status: int | None) -> None:
	if status is not None:
		exchange.setStatus(status)


def setHeaders(
	exchange: Exchange, headers: Mapping[str, THeaderValue] | None
) -> None:
	"""Updates the exchange with a map of headers. Sequence values are added
	as one header line per element."""
	content_type: str | None = None
	for name, value in (headers or {}).items():
		last: str | None = None
		if value is None:
			continue
		elif isinstance(value, str) or isinstance(value, int):
			last = str(value)
			exchange.setHeader(name, last)
		elif isinstance(value, bytes) or isinstance(value, bytearray):
			# Header bytes are ISO-8859-1 on the wire
			last = bytes(value).decode("latin1")
			exchange.setHeader(name, last)
		else:
			for item in value:
				last = str(item)
				exchange.addHeader(name, last)
		if name.lower() == "content-type":
			content_type = last
	# Some containers only honour the content type through its own setter
	if content_type is not None:
		exchange.setContentType(content_type)


def finalize(
	exchange: Exchange,
	response: Response | Mapping[str, Any] | None,
	*,
	loop: asyncio.AbstractEventLoop | None = None,
	encoding: str = DEFAULT_ENCODING,
) -> AsyncCompletion | None:
	"""Applies the response to the exchange. Synchronous bodies are written
	right away and the exchange output is flushed, asynchronous bodies are
	handed to an `AsyncCompletion` which is returned."""
	res = Response.Make(response)
	if res is None:
		raise NullResponse()
	setStatus(exchange, res.status)
	setHeaders(exchange, res.headers)
	try:
		body = Body.Classify(res.body)
	except UnsupportedBodyShape as e:
		warning("Unsupported body", Shape=e.shape, Status=res.status)
		raise
	if isinstance(body, BodyAsyncStream):
		return complete(exchange, body.stream, loop=loop, encoding=encoding)
	else:
		BodyWriter(exchange.output, encoding=encoding).write(body)
		try:
			exchange.flushBuffer()
		except OSError as e:
			raise WriteFailure(f"Could not flush response: {e}") from e
		logged(debug) and debug(
			"Response sent", Status=res.status, Body=body.__class__.__name__
		)
		return None


# EOF
