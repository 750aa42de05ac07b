import asyncio
import typing

import mido
import pytest

import basedrum.arrangement
import basedrum.config
import basedrum.expansion
import basedrum.session
import basedrum.song
import basedrum.user_data
import basedrum.voices


def _recording_session (config: typing.Optional[basedrum.config.SessionConfig] = None) -> basedrum.session.Session:

	"""A session that records triggers instead of opening MIDI."""

	voices = {name: basedrum.voices.RecordingVoice() for name in ("kick", "hihat", "bass", "snare", "clap", "acid", "lead")}

	return basedrum.session.Session(config, voices=voices)


class FakeClient:

	"""An expansion client with a canned outcome."""

	def __init__ (self, result: typing.Union[basedrum.song.SongDocument, Exception]) -> None:

		self.result = result
		self.requested: list[str] = []


	async def expand (self, document: basedrum.song.SongDocument) -> basedrum.song.SongDocument:

		"""Return the canned document or raise the canned error."""

		self.requested.append(document.metadata.title)

		if isinstance(self.result, Exception):
			raise self.result

		return self.result


def test_generate_from_user_data (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""The mid-activity user gets a 145 BPM loop with four tracks."""

	session = _recording_session()
	document = session.generate(scenario_user)

	assert session.document is document
	assert document.metadata.bpm == 145
	assert set(document.tracks) == {"kick", "hihat", "bass", "snare"}
	assert [track.id for track in session.tracks] == list(document.tracks)


def test_generate_accepts_plain_mappings () -> None:

	"""Raw dicts are parsed into user data first."""

	session = _recording_session()
	document = session.generate({"onchain": {"transactionCount": 150}}, title="Mine")

	assert document.metadata.title == "Mine"


def test_onboard (empty_user: basedrum.user_data.UserDataVector) -> None:

	"""Onboarding publishes the threshold loop."""

	session = _recording_session()
	document = session.onboard(empty_user)

	assert list(document.tracks["kick"].pattern) == [0, 4, 8, 12]
	assert session.handle.revision == 1


def test_rejected_load_keeps_current_document (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""A bad document raises, is remembered, and nothing is swapped."""

	session = _recording_session()
	current = session.generate(scenario_user)
	data = basedrum.song.song_to_dict(current)
	data["metadata"]["bpm"] = 500

	with pytest.raises(basedrum.song.SongValidationError):
		session.load(data)

	with pytest.raises(basedrum.song.SongValidationError):
		session.load_json("{broken")

	assert session.document is current
	assert isinstance(session.last_error, basedrum.song.SongValidationError)


def test_load_json (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""A valid JSON string becomes the current document."""

	session = _recording_session()
	text = basedrum.song.song_to_json(session.generate(scenario_user))
	session.load_json(text.replace('"bpm": 145', '"bpm": 90'))

	assert session.document.metadata.bpm == 90


def test_expand_local (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""The template arrangement replaces the loop and updates the section map."""

	session = _recording_session()
	session.generate(scenario_user)
	expanded = session.expand_local()

	assert session.document is expanded
	assert expanded.steps == 512
	assert session.sequencer.section_map.section_for_bar(4) == "buildup1"


def test_expand_without_document_raises () -> None:

	"""There is nothing to expand before a song exists."""

	with pytest.raises(RuntimeError):
		_recording_session().expand_local()


@pytest.mark.asyncio
async def test_expand_remote_swaps_on_success (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""A good expansion is published."""

	session = _recording_session()
	loop = session.generate(scenario_user)
	expanded = basedrum.arrangement.expand_song(loop)
	client = FakeClient(expanded)

	result = await session.expand_remote(client)  # type: ignore[arg-type]

	assert result is expanded
	assert session.document is expanded
	assert client.requested == [loop.metadata.title]
	assert session.last_error is None


@pytest.mark.asyncio
async def test_expand_remote_failure_keeps_loop (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""A failed expansion leaves the loop playing and records the error."""

	session = _recording_session()
	loop = session.generate(scenario_user)
	client = FakeClient(basedrum.expansion.ExpansionError("timed out"))

	result = await session.expand_remote(client)  # type: ignore[arg-type]

	assert result is loop
	assert session.document is loop
	assert isinstance(session.last_error, basedrum.expansion.ExpansionError)


@pytest.mark.asyncio
async def test_expand_remote_needs_endpoint (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""Without a client or a configured endpoint there is nowhere to ask."""

	session = _recording_session()
	session.generate(scenario_user)

	with pytest.raises(ValueError):
		await session.expand_remote()


@pytest.mark.asyncio
async def test_play_requires_initialize (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""play() before initialize() is refused."""

	session = _recording_session()
	session.generate(scenario_user)

	with pytest.raises(basedrum.voices.EngineInitError):
		await session.play()


@pytest.mark.asyncio
async def test_play_without_document_raises () -> None:

	"""An initialized session still needs a song."""

	session = _recording_session()
	await session.initialize()

	with pytest.raises(RuntimeError):
		await session.play()


@pytest.mark.asyncio
async def test_render_from_the_start (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""Offline rendering always begins at step 0 and uses the document tempo."""

	session = _recording_session()
	document = session.generate(scenario_user)

	first = await session.render(16)
	second = await session.render(16)

	assert [t.step for t in first] == [t.step for t in second]
	assert session.sequencer.current_bpm == document.metadata.bpm
	assert {t.track for t in first} <= set(document.tracks)
	assert any(t.track == "kick" and t.step == 0 for t in first)


@pytest.mark.asyncio
async def test_midi_session_lifecycle (fake_output, scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""initialize opens MIDI, play sends notes, dispose closes the port."""

	session = basedrum.session.Session(basedrum.config.SessionConfig(spin_wait=False))
	session.generate(scenario_user)

	await session.initialize()

	assert set(session.sequencer.voices) == set(session.document.tracks)

	await session.play()

	assert session.playing

	await asyncio.sleep(0.15)
	await session.stop()

	assert not session.playing

	port = fake_output()
	await session.dispose()

	assert any(message.type == "note_on" for message in port.messages)
	assert port.closed
	assert not session.initialized


@pytest.mark.asyncio
async def test_initialize_failure_leaves_session_usable (monkeypatch: pytest.MonkeyPatch, scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""No MIDI outputs: initialize raises and the session is not marked ready."""

	monkeypatch.setattr(mido, "get_output_names", lambda: [])

	session = basedrum.session.Session()
	session.generate(scenario_user)

	with pytest.raises(basedrum.voices.EngineInitError):
		await session.initialize()

	assert not session.initialized


def test_live_controls (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""Mute, volume and tempo go through the handle and sequencer."""

	session = _recording_session()
	session.generate(scenario_user)

	session.set_muted("kick", True)
	session.set_volume("bass", -20)
	session.set_bpm(100)

	assert session.handle.is_muted("kick")
	assert session.handle.volume_for("bass", session.document.tracks["bass"]) == -20
	assert session.sequencer.current_bpm == 100


def test_mute_revert_is_logged_as_revert (scenario_user: basedrum.user_data.UserDataVector, caplog: pytest.LogCaptureFixture) -> None:

	"""Clearing the override falls back to the document flag and says so."""

	session = _recording_session()
	session.generate(scenario_user)

	with caplog.at_level("INFO", logger="basedrum.session"):
		session.set_muted("kick", True)
		session.set_muted("kick", None)

	assert "'kick' muted" in caplog.text
	assert "reverted to document" in caplog.text
	assert "unmuted" not in caplog.text
	assert session.handle.is_muted("kick") is False
