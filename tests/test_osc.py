import asyncio
import typing

import pythonosc.udp_client
import pytest

import basedrum.osc
import basedrum.session
import basedrum.voices


@pytest.fixture
def session () -> basedrum.session.Session:

	"""A session with recording voices and a one-bar loop loaded."""

	session = basedrum.session.Session(voices={"kick": basedrum.voices.RecordingVoice()})
	session.onboard(None)

	return session


class RecordingClient:

	"""Collects outgoing OSC messages instead of sending them."""

	def __init__ (self) -> None:

		self.sent: list[typing.Tuple[str, typing.Any]] = []


	def send_message (self, address: str, value: typing.Any) -> None:

		"""Record the message."""

		self.sent.append((address, value))


@pytest.mark.asyncio
async def test_osc_bpm_handler (session: basedrum.session.Session) -> None:

	"""Sending /bpm should update the sequencer tempo."""

	server = basedrum.osc.OscBridge(session, receive_port=0, send_port=0)
	await server.start()

	port = server._transport.get_extra_info("sockname")[1]

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", port)
	client.send_message("/bpm", 145)

	await asyncio.sleep(0.1)

	assert session.sequencer.current_bpm == 145

	await server.stop()


@pytest.mark.asyncio
async def test_osc_mute_handler (session: basedrum.session.Session) -> None:

	"""Sending /mute/<track> and /unmute/<track> should toggle the override."""

	server = basedrum.osc.OscBridge(session, receive_port=0, send_port=0)
	await server.start()
	port = server._transport.get_extra_info("sockname")[1]

	client = pythonosc.udp_client.SimpleUDPClient("127.0.0.1", port)
	client.send_message("/mute/kick", [])

	await asyncio.sleep(0.1)

	assert session.handle.is_muted("kick") is True

	client.send_message("/unmute/kick", [])
	await asyncio.sleep(0.1)

	assert session.handle.is_muted("kick") is False

	await server.stop()


def test_osc_bad_bpm_is_ignored (session: basedrum.session.Session) -> None:

	"""A non-numeric tempo is logged and dropped."""

	server = basedrum.osc.OscBridge(session, receive_port=0, send_port=0)
	before = session.sequencer.current_bpm

	server._handle_bpm("/bpm", "fast")
	server._handle_bpm("/bpm")

	assert session.sequencer.current_bpm == before


@pytest.mark.asyncio
async def test_osc_sends_playhead (session: basedrum.session.Session) -> None:

	"""Step, bar and intensity updates are forwarded while rendering."""

	server = basedrum.osc.OscBridge(session, receive_port=0, send_port=0)
	recorder = RecordingClient()
	server._client = recorder  # type: ignore[assignment]

	await session.render(2)

	addresses = [address for address, _ in recorder.sent]

	assert ("/step", (0,)) in recorder.sent
	assert ("/step", (1,)) in recorder.sent
	assert ("/bar", (0,)) in recorder.sent
	assert ("/intensity", (1.0,)) in recorder.sent
	assert addresses.index("/bar") < addresses.index("/step")


def test_send_before_start_does_nothing (session: basedrum.session.Session) -> None:

	"""Without a client there is nowhere to send."""

	server = basedrum.osc.OscBridge(session)

	server.send("/step", 1)
