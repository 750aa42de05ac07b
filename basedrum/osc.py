"""OSC bridge for realtime control and playhead broadcasting.

Start the bridge with ``await bridge.start()`` after creating the session.
It listens on a UDP port (default 9000) for control messages and sends
playback state to a target host/port (default 127.0.0.1:9001).

Receive Handlers
────────────────
- ``/bpm <int>``: Set tempo
- ``/mute/<track>``: Mute a track
- ``/unmute/<track>``: Unmute a track

Send Events
───────────
- ``/step <int>``: Every step, the position within the bar (0-15)
- ``/intensity <float>``: Beat-intensity envelope values
- ``/bar <int>``: On bar change
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

if typing.TYPE_CHECKING:
	from basedrum.session import Session


logger = logging.getLogger(__name__)


class OscBridge:

	"""Async OSC server/client wired to a session's sequencer."""

	def __init__ (
		self,
		session: "Session",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._session = session
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/bpm", self._handle_bpm)
		self._dispatcher.map("/mute/*", self._handle_mute)
		self._dispatcher.map("/unmute/*", self._handle_unmute)

		session.on_step(self._send_step)
		session.on_beat_intensity(self._send_intensity)
		session.sequencer.on_event("bar", self._send_bar)


	async def start (self) -> None:

		"""Start the OSC server and client."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message.  Does nothing before :meth:`start`."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)


	# Outgoing

	def _send_step (self, step: int) -> None:
		self.send("/step", int(step))

	def _send_intensity (self, value: float) -> None:
		self.send("/intensity", float(value))

	def _send_bar (self, bar: int) -> None:
		self.send("/bar", int(bar))


	# Handlers

	def _handle_bpm (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			bpm = int(args[0])
			self._session.set_bpm(bpm)
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC BPM argument: {args[0]}")

	def _handle_mute (self, address: str, *args: typing.Any) -> None:
		# address is like /mute/kick
		parts = address.split("/")
		if len(parts) >= 3:
			self._session.set_muted(parts[2], True)

	def _handle_unmute (self, address: str, *args: typing.Any) -> None:
		parts = address.split("/")
		if len(parts) >= 3:
			self._session.set_muted(parts[2], False)
