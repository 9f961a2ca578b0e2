import asyncio
import threading

from conduit.channel import Channel


def test_order_and_end():
	async def main():
		channel: Channel[str] = Channel()
		for value in ("a", "b", "c"):
			assert await channel.put(value)
		assert channel.close()
		assert channel.isClosed
		# Values put before closing are still delivered
		assert [_ async for _ in channel] == ["a", "b", "c"]
		# Iterating an ended channel yields nothing
		assert [_ async for _ in channel] == []

	asyncio.run(main())


def test_closed_channel_drops_values():
	channel: Channel[str] = Channel()
	assert channel.close()
	assert not channel.close()
	assert channel.offer("late") is False


def test_invalid_values():
	channel: Channel[object] = Channel()
	try:
		channel.offer(None)
	except ValueError:
		pass
	else:
		raise AssertionError("Channel should refuse None")
	assert not channel.isClosed


def test_producer_thread():
	async def main():
		channel: Channel[int] = Channel()
		received: list[int] = []

		def produce() -> None:
			for i in range(100):
				channel.offer(i)
			channel.close()

		async def consume() -> None:
			async for value in channel:
				received.append(value)

		consumer = asyncio.create_task(consume())
		# Let the consumer bind to the loop before producing
		await asyncio.sleep(0)
		thread = threading.Thread(target=produce)
		thread.start()
		await asyncio.wait_for(consumer, timeout=2.0)
		thread.join()
		assert received == list(range(100))

	asyncio.run(main())


def test_aclose():
	async def main():
		channel: Channel[str] = Channel()
		await channel.put("a")
		await channel.aclose()
		assert channel.isClosed
		assert [_ async for _ in channel] == ["a"]

	asyncio.run(main())


# EOF
