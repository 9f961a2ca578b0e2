from io import BytesIO

from conduit.bridge.memory import MemoryExchange, MemoryOutput, SinkEvent
from conduit.model import NullResponse, Response, UnsupportedBodyShape, WriteFailure
from conduit.response import finalize, setHeaders


def test_text_response():
	exchange = MemoryExchange()
	res = finalize(
		exchange,
		Response(status=200, headers={"Content-Type": "text/plain"}, body="hello"),
	)
	assert res is None
	assert exchange.status == 200
	assert exchange.responseContentType == "text/plain"
	assert exchange.header("Content-Type") == ["text/plain"]
	assert exchange.output.events == [SinkEvent("write", b"hello"), SinkEvent("flush")]
	assert exchange.flushed == 1
	assert exchange.asyncContext is None


def test_mapping_response():
	exchange = MemoryExchange()
	finalize(exchange, {"status": 201, "headers": {"X-Id": "1"}, "body": ["a", "b"]})
	assert exchange.status == 201
	assert exchange.header("x-id") == ["1"]
	assert exchange.output.data == b"ab"
	assert exchange.flushed == 1


def test_status_absent_keeps_default():
	exchange = MemoryExchange()
	exchange.setStatus(202)
	finalize(exchange, Response(body="ok"))
	assert exchange.status == 202


def test_headers():
	exchange = MemoryExchange()
	exchange.setHeader("X-Replaced", "before")
	setHeaders(
		exchange,
		{
			"Set-Cookie": ["a=1", "b=2"],
			"X-Replaced": "after",
			"Content-Length": 10,
			"content-type": "text/html",
		},
	)
	assert exchange.header("Set-Cookie") == ["a=1", "b=2"]
	assert exchange.header("X-Replaced") == ["after"]
	assert exchange.header("Content-Length") == ["10"]
	assert exchange.responseContentType == "text/html"


def test_headers_content_type_sequence():
	exchange = MemoryExchange()
	setHeaders(exchange, {"Content-Type": ["text/plain", "application/json"]})
	assert exchange.responseContentType == "application/json"


def test_headers_none_and_bytes():
	exchange = MemoryExchange()
	setHeaders(exchange, {"X-None": None, "X-Bytes": b"raw", "Content-Type": None})
	assert exchange.header("X-None") == []
	assert exchange.header("X-Bytes") == ["raw"]
	assert exchange.responseContentType is None


def test_headers_without_content_type():
	exchange = MemoryExchange()
	setHeaders(exchange, {"X-A": "a"})
	setHeaders(exchange, None)
	assert exchange.responseContentType is None


def test_absent_body():
	exchange = MemoryExchange()
	finalize(exchange, Response(status=204))
	assert exchange.status == 204
	assert exchange.output.events == []
	assert exchange.flushed == 1
	assert exchange.completions == 0


def test_source_body():
	source = BytesIO(b"streamed")
	exchange = MemoryExchange()
	finalize(exchange, Response(body=source))
	assert exchange.output.data == b"streamed"
	assert source.closed
	assert exchange.flushed == 1


def test_null_response():
	try:
		finalize(MemoryExchange(), None)
	except NullResponse:
		pass
	else:
		raise AssertionError("A null response should fail")


def test_unsupported_body():
	exchange = MemoryExchange()
	try:
		finalize(exchange, Response(status=200, body=42))
	except UnsupportedBodyShape as e:
		assert "int" in e.shape
	else:
		raise AssertionError("An unsupported body should fail")
	assert exchange.output.events == []
	assert exchange.flushed == 0


def test_write_failure_propagates():
	exchange = MemoryExchange(output=MemoryOutput(failAfter=1))
	try:
		finalize(exchange, Response(body=["a", "b"]))
	except WriteFailure:
		pass
	else:
		raise AssertionError("The write failure should propagate")
	assert exchange.output.data == b"a"
	assert exchange.flushed == 0


def test_unsupported_response():
	try:
		finalize(MemoryExchange(), "not a response")
	except ValueError:
		pass
	else:
		raise AssertionError("Strings are not response descriptors")


# EOF
