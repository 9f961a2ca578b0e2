from .model import (
	Body,
	ConduitError,
	HandlerReturnedNothing,
	NullResponse,
	RequestSnapshot,
	Response,
	Scheme,
	UnsupportedBodyShape,
	WriteFailure,
)  # NOQA: F401
from .exchange import AsyncContext, AsyncListener, Exchange  # NOQA: F401
from .body import BodyWriter, write  # NOQA: F401
from .channel import Channel  # NOQA: F401
from .completion import AsyncCompletion, CompletionState  # NOQA: F401
from .response import finalize  # NOQA: F401
from .service import Service, service  # NOQA: F401


# EOF
