"""
Basic Hello World Example

This demonstrates the simplest possible Conduit service, run in-process
through the memory bridge.
Features shown:
- Handler taking a request snapshot
- Response descriptor with status, headers and body
- Conduit logging for nicer output

Usage:
    python helloworld.py
"""

from conduit import RequestSnapshot, Response, service
from conduit.utils.logging import info


def hello(request: RequestSnapshot) -> Response:
	"""Responds with a Hello World message."""
	return Response(
		status=200,
		headers={"Content-Type": "text/plain"},
		body=f"Hello, World! (path: {request.uri})",
	)


if __name__ == "__main__":
	exchange = service(hello).request("GET", "/anything")
	info(
		"Response",
		Status=exchange.status,
		ContentType=exchange.responseContentType,
		Body=exchange.output.data.decode(),
	)

# EOF
