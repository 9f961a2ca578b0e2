from typing import Any, NamedTuple

from ..config import ENCODING

DEFAULT_ENCODING: str = ENCODING


class Control(NamedTuple):
	id: str


# The "no more values" marker for channels
EOS = Control("EOS")


def asBytes(
	value: str | bytes | bytearray | memoryview | None,
	encoding: str = DEFAULT_ENCODING,
) -> bytes:
	if isinstance(value, bytes):
		return value
	elif isinstance(value, bytearray) or isinstance(value, memoryview):
		return bytes(value)
	elif isinstance(value, str):
		return value.encode(encoding)
	elif value is None:
		return b""
	else:
		raise ValueError(f"Expected bytes or str, got: {value}")


def stringify(value: Any, encoding: str = DEFAULT_ENCODING) -> bytes:
	"""Converts a chunk of a sequence body to the bytes that will be
	written. Bytes-like values are passed verbatim so that they are
	never encoded twice, strings are encoded and anything else goes through
	`str()` first."""
	if value is None:
		return b""
	elif (
		isinstance(value, bytes)
		or isinstance(value, bytearray)
		or isinstance(value, memoryview)
	):
		return bytes(value)
	elif isinstance(value, str):
		return value.encode(encoding)
	else:
		return str(value).encode(encoding)


def describe(value: Any, limit: int = 80) -> str:
	"""Returns a short `<type> repr` description of the value, for
	diagnostics."""
	text = repr(value)
	if len(text) > limit:
		text = text[: limit - 1] + "…"
	return f"<{type(value).__name__}> {text}"


# EOF
