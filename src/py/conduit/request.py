from types import MappingProxyType
from typing import Any

from .exchange import CLIENT_CERT_ATTRIBUTE, Exchange
from .model import RequestSnapshot, Scheme


def headers(exchange: Exchange) -> MappingProxyType:
	"""Creates a name/value map of all the request headers, names are
	lower-cased and repeated headers are joined with a comma."""
	res: dict[str, list[str]] = {}
	for name in exchange.headerNames():
		key = name.lower()
		# Names differing only by case are the same header
		if key in res:
			continue
		res[key] = list(exchange.headerValues(name))
	return MappingProxyType({k: ",".join(v) for k, v in res.items()})


def contentLength(exchange: Exchange) -> int | None:
	"""Returns the content length, or None if it is unknown."""
	length = exchange.contentLength
	return length if length is not None and length >= 0 else None


def clientCert(exchange: Exchange) -> Any:
	"""Returns the TLS client certificate of the request, if one exists."""
	chain = exchange.attribute(CLIENT_CERT_ATTRIBUTE)
	return chain[0] if chain else None


def build(exchange: Exchange) -> RequestSnapshot:
	"""Creates the request snapshot from the exchange accessors."""
	return RequestSnapshot(
		serverPort=exchange.serverPort,
		serverName=exchange.serverName,
		remoteAddr=exchange.remoteAddr,
		uri=exchange.uri,
		queryString=exchange.queryString,
		scheme=Scheme.Parse(exchange.scheme),
		method=exchange.method.lower(),
		headers=headers(exchange),
		contentType=exchange.contentType,
		contentLength=contentLength(exchange),
		characterEncoding=exchange.characterEncoding,
		clientCert=clientCert(exchange),
		body=exchange.input,
	)


def merge(
	request: RequestSnapshot, exchange: Exchange, service: Any = None
) -> RequestSnapshot:
	"""Adds the exchange-identifying fields used by legacy callers."""
	return request._replace(
		exchange=exchange,
		service=service,
		contextPath=exchange.contextPath,
	)


# EOF
