from typing import Any, BinaryIO

from .config import CHUNK_SIZE
from .exchange import Sink
from .model import (
	Body,
	BodyAsyncStream,
	BodyCallback,
	BodyEmpty,
	BodyFile,
	BodySequence,
	BodySource,
	BodyText,
	TBody,
	UnsupportedBodyShape,
	WriteFailure,
)
from .utils.io import DEFAULT_ENCODING, asBytes, describe, stringify
from .utils.logging import debug, logged, warning

# -----------------------------------------------------------------------------
#
# BODY WRITER
#
# -----------------------------------------------------------------------------


class BodyWriter:
	"""Writes any of the synchronous body variants to an output sink. The
	dispatch happens on the classified variant, so that unsupported shapes
	fail before anything is written."""

	__slots__ = ["sink", "encoding", "size"]

	def __init__(
		self,
		sink: Sink,
		*,
		encoding: str = DEFAULT_ENCODING,
		size: int = CHUNK_SIZE,
	) -> None:
		self.sink: Sink = sink
		self.encoding: str = encoding
		self.size: int = size

	def write(self, value: Any) -> TBody:
		"""Writes the given body value, returning the variant it was
		classified as."""
		try:
			body: TBody = Body.Classify(value)
		except UnsupportedBodyShape as e:
			warning("Unsupported body", Shape=e.shape)
			raise
		try:
			if isinstance(body, BodyEmpty):
				pass
			elif isinstance(body, BodyText):
				self._writeBytes(asBytes(body.value, self.encoding))
			elif isinstance(body, BodySequence):
				for chunk in body.chunks:
					self._writeBytes(stringify(chunk, self.encoding))
			elif isinstance(body, BodySource):
				self._writeSource(body.source)
			elif isinstance(body, BodyFile):
				# The file is opened here and then owned by the source copy
				self._writeSource(open(body.path, "rb"))
			elif isinstance(body, BodyCallback):
				body.callback(self.sink)
			elif isinstance(body, BodyAsyncStream):
				# Async streams are drained chunk by chunk by the completion
				# controller, never here.
				raise UnsupportedBodyShape(body.stream)
			else:
				raise UnsupportedBodyShape(body)
		except WriteFailure:
			raise
		except OSError as e:
			raise WriteFailure(
				f"Could not write body {describe(value)}: {e}"
			) from e
		return body

	def _writeBytes(self, data: bytes) -> None:
		if data:
			self.sink.write(data)
		self.sink.flush()

	def _writeSource(self, source: BinaryIO) -> None:
		read: int = 0
		try:
			while chunk := source.read(self.size):
				payload = (
					chunk.encode(self.encoding) if isinstance(chunk, str) else chunk
				)
				self.sink.write(payload)
				read += len(payload)
			self.sink.flush()
		finally:
			source.close()
		logged(debug) and debug("Source copied", Read=read)


def write(value: Any, sink: Sink, *, encoding: str = DEFAULT_ENCODING) -> TBody:
	"""Writes the body value to the sink."""
	return BodyWriter(sink, encoding=encoding).write(value)


# EOF
