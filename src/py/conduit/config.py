from os import getenv

# Encoding used when text bodies are turned into bytes
ENCODING: str = getenv("CONDUIT_ENCODING", "utf8")

# Block size when copying byte sources and files to the output sink
CHUNK_SIZE: int = int(getenv("CONDUIT_CHUNK_SIZE", 64_000))

# One of Debug, Info, Warning, Error
LOG_LEVEL: str = getenv("CONDUIT_LOG_LEVEL", "Info")

# Timeout given to the async context, 0 means the producer controls its
# own lifetime.
ASYNC_TIMEOUT: int = int(getenv("CONDUIT_ASYNC_TIMEOUT", 0))

# EOF
