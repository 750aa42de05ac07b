import asyncio
import logging
import typing


logger = logging.getLogger(__name__)


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A simple event emitter supporting sync and async callbacks.

	A listener that raises is logged and skipped; the remaining listeners
	still run and the exception never reaches the emitter's caller.  The
	sequencer emits from its clock loop, where an escaping exception would
	stop playback.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}
		self._tasks: typing.Set[asyncio.Task] = set()


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def listener_count (self, event_name: str) -> int:

		return len(self._listeners.get(event_name, []))


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and call non-async listeners immediately.

		Raises ``ValueError`` if an async listener is registered for the event.
		"""

		if event_name not in self._listeners:
			return

		for callback in list(self._listeners[event_name]):

			if asyncio.iscoroutinefunction(callback):
				raise ValueError(f"Async callback encountered in emit_sync for {event_name!r}")

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event from synchronous code without ever raising.

		Plain listeners are called immediately.  Async listeners are scheduled
		as tasks on the running loop; with no loop running they are skipped
		with a warning.
		"""

		if event_name not in self._listeners:
			return

		for callback in list(self._listeners[event_name]):

			if asyncio.iscoroutinefunction(callback):
				self._schedule(event_name, callback, args, kwargs)
				continue

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")


	def _schedule (self, event_name: str, callback: CallbackType, args: typing.Tuple[typing.Any, ...], kwargs: typing.Dict[str, typing.Any]) -> None:

		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			logger.warning(f"No running loop for async listener of {event_name!r}; skipped")
			return

		task = loop.create_task(callback(*args, **kwargs))
		self._tasks.add(task)
		task.add_done_callback(lambda done: self._task_done(event_name, done))


	def _task_done (self, event_name: str, task: asyncio.Task) -> None:

		self._tasks.discard(task)

		if task.cancelled():
			return

		error = task.exception()

		if error is not None:
			logger.error(f"Async listener for {event_name!r} failed: {error!r}")


	async def emit_async (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and await async listeners.
		"""

		if event_name not in self._listeners:
			return

		tasks: typing.List[typing.Awaitable[typing.Any]] = []

		for callback in list(self._listeners[event_name]):

			if asyncio.iscoroutinefunction(callback):
				tasks.append(callback(*args, **kwargs))

			else:
				try:
					callback(*args, **kwargs)
				except Exception:
					logger.exception(f"Listener for {event_name!r} failed")

		if tasks:
			results = await asyncio.gather(*tasks, return_exceptions=True)
			for result in results:
				if isinstance(result, Exception):
					logger.error(f"Async listener for {event_name!r} failed: {result!r}")
