import asyncio
import json
import logging
import typing
import weakref

import websockets
import websockets.asyncio.server
import websockets.exceptions

if typing.TYPE_CHECKING:
	from basedrum.session import Session


logger = logging.getLogger(__name__)


class StepBroadcaster:

	"""
	Pushes the playhead to browsers over a WebSocket.

	Every step and every beat-intensity change updates a small state dict;
	a background task sends it to all connected clients at most ``rate``
	times a second as ``{"step", "intensity", "title", "bars"}`` JSON, so the
	sequencer's clock never waits on a socket.
	"""

	def __init__ (self, session: "Session", ws_port: int = 8765, host: str = "0.0.0.0", rate: float = 30.0) -> None:

		self.session_ref = weakref.ref(session)
		self.ws_port = ws_port
		self.host = host
		self.interval = 1.0 / rate
		self.step = 0
		self.intensity = 0.0
		self._dirty = False
		self._ws_server: typing.Optional[websockets.asyncio.server.Server] = None
		self._broadcast_task: typing.Optional[asyncio.Task] = None
		self._clients: typing.Set[websockets.asyncio.server.ServerConnection] = set()

		session.on_step(self._on_step)
		session.on_beat_intensity(self._on_intensity)

	def _on_step (self, step: int) -> None:

		self.step = step
		self._dirty = True

	def _on_intensity (self, value: float) -> None:

		self.intensity = value
		self._dirty = True

	def state (self) -> typing.Dict[str, typing.Any]:

		"""The message clients receive."""

		state: typing.Dict[str, typing.Any] = {
			"step": self.step,
			"intensity": self.intensity,
			"title": None,
			"bars": None,
		}

		session = self.session_ref()
		document = session.document if session is not None else None

		if document is not None:
			state["title"] = document.metadata.title
			state["bars"] = document.metadata.bars

		return state

	async def start (self) -> None:

		try:
			self._ws_server = await websockets.asyncio.server.serve(self._handle_client, self.host, self.ws_port)
		except OSError as e:
			logger.error(f"WebSocket server error: {e}")
			return

		self._broadcast_task = asyncio.create_task(self._broadcast_loop())
		logger.info(f"Step broadcaster listening on ws://{self.host}:{self.ws_port}")

	async def _handle_client (self, websocket: websockets.asyncio.server.ServerConnection) -> None:

		self._clients.add(websocket)
		try:
			await websocket.send(json.dumps(self.state()))
			# Incoming messages are ignored; reading keeps the connection open
			async for _message in websocket:
				pass
		except websockets.exceptions.ConnectionClosed:
			pass
		finally:
			self._clients.discard(websocket)

	async def _broadcast_loop (self) -> None:

		while True:
			await asyncio.sleep(self.interval)

			if not self._clients or not self._dirty:
				continue

			if self.session_ref() is None:
				break

			self._dirty = False

			try:
				websockets.broadcast(self._clients, json.dumps(self.state()))
			except Exception:
				logger.exception("Error broadcasting playhead state")

	async def stop (self) -> None:

		if self._broadcast_task:
			self._broadcast_task.cancel()
			try:
				await self._broadcast_task
			except asyncio.CancelledError:
				pass
			self._broadcast_task = None

		if self._ws_server:
			self._ws_server.close()
			await self._ws_server.wait_closed()
			self._ws_server = None
