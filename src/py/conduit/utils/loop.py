import asyncio
import threading
from typing import ClassVar

from .logging import info


class BackgroundLoop:
	"""An event loop running on a daemon thread, used to drain asynchronous
	bodies when the container calls us from a thread that has no running
	loop."""

	INSTANCE: ClassVar["BackgroundLoop | None"] = None
	LOCK = threading.Lock()

	@classmethod
	def Get(cls) -> asyncio.AbstractEventLoop:
		with cls.LOCK:
			if cls.INSTANCE is None or not cls.INSTANCE.isRunning:
				cls.INSTANCE = BackgroundLoop().start()
			return cls.INSTANCE.loop

	def __init__(self) -> None:
		self.loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
		self.thread: threading.Thread = threading.Thread(
			target=self.run, name="conduit-loop", daemon=True
		)
		self._ready = threading.Event()

	@property
	def isRunning(self) -> bool:
		return self.thread.is_alive() and not self.loop.is_closed()

	def run(self) -> None:
		asyncio.set_event_loop(self.loop)
		self.loop.call_soon(self._ready.set)
		try:
			self.loop.run_forever()
		finally:
			self.loop.close()

	def start(self) -> "BackgroundLoop":
		self.thread.start()
		self._ready.wait()
		info("Background loop started", Thread=self.thread.name)
		return self

	def stop(self) -> None:
		if self.isRunning:
			self.loop.call_soon_threadsafe(self.loop.stop)
			self.thread.join()


def resolve(loop: asyncio.AbstractEventLoop | None = None) -> asyncio.AbstractEventLoop:
	"""Returns the given loop, or the running one, or the shared background
	loop."""
	if loop is not None:
		return loop
	try:
		return asyncio.get_running_loop()
	except RuntimeError:
		return BackgroundLoop.Get()


# EOF
