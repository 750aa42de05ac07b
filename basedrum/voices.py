"""Voices: what the sequencer triggers, and the engine that owns them.

The sequencer only knows the :class:`Voice` protocol.  A voice receives a
:class:`TriggerEvent` (note or none, duration, velocity, time) and makes
sound however it likes.  Two implementations ship here:

- :class:`MidiVoice` sends note on/off to a mido output port.
- :class:`RecordingVoice` keeps events in memory for offline rendering and tests.

:class:`AudioEngine` is the explicitly owned context that opens the MIDI
port and hands out voices.  Lifecycle::

	engine = AudioEngine("IAC Driver Bus 1")
	await engine.initialize()          # may raise EngineInitError
	voices = engine.voices_for(document)
	...
	await engine.dispose()
"""

import asyncio
import dataclasses
import logging
import typing

import mido

import basedrum.constants.gm_drums
import basedrum.intervals
import basedrum.midi_utils
import basedrum.song


logger = logging.getLogger(__name__)


class EngineInitError (RuntimeError):

	"""The audio engine could not be brought up.  No partial state is kept."""


@dataclasses.dataclass(frozen=True)
class TriggerEvent:

	"""
	One voice trigger.

	Attributes:
		note: Pitch name (``"C2"``), a comma-separated chord (``"C3,Eb3,G3"``) or
			``None`` for unpitched voices.
		duration: Seconds the note should sound.
		velocity: Final strength (0-1), already scaled by track gain.
		time: Sequencer clock time of the tick in seconds, shared by every
			trigger of that tick.
		offset: Extra delay in seconds the voice should apply after ``time``.
		track: Track name the trigger came from.
		step: Step index within the document.
		ghost: True for a ghost-note hit.
	"""

	note: typing.Optional[str]
	duration: float
	velocity: float
	time: float
	offset: float = 0.0
	track: str = ""
	step: int = 0
	ghost: bool = False

	@property
	def notes (self) -> typing.List[str]:

		if not self.note:
			return []

		return [name.strip() for name in self.note.split(",") if name.strip()]


@typing.runtime_checkable
class Voice (typing.Protocol):

	"""
	Protocol for anything the sequencer can trigger.
	"""

	def trigger (self, event: TriggerEvent) -> None:

		"""Start a sound.  Must not block."""

		...

	def release_all (self) -> None:

		"""Cancel pending work and silence sounding notes."""

		...


class RecordingVoice:

	"""A voice that only remembers what it was asked to play."""

	def __init__ (self) -> None:

		self.events: typing.List[TriggerEvent] = []
		self.releases = 0

	def trigger (self, event: TriggerEvent) -> None:

		self.events.append(event)

	def release_all (self) -> None:

		self.releases += 1

	def steps (self) -> typing.List[int]:

		return [event.step for event in self.events]


class MidiVoice:

	"""
	Plays triggers as MIDI notes on one channel of an output port.

	Note-ons go out immediately (or after ``event.offset``); note-offs are
	scheduled on the running event loop ``event.duration`` seconds later.
	Every scheduled callback is kept so :meth:`release_all` can cancel it and
	send the matching note-off at once.
	"""

	def __init__ (self, port: typing.Any, channel: int, default_note: int) -> None:

		self.port = port
		self.channel = channel
		self.default_note = default_note
		self._pending: typing.Set[asyncio.TimerHandle] = set()
		self._sounding: typing.Set[int] = set()

	def _pitches (self, event: TriggerEvent) -> typing.List[int]:

		pitches: typing.List[int] = []

		for name in event.notes:
			try:
				pitches.append(basedrum.intervals.note_to_midi(name))
			except ValueError:
				logger.warning(f"Unplayable note {name!r} on {event.track or 'track'}; using default")
				pitches.append(self.default_note)

		return pitches or [self.default_note]

	def _send (self, message_type: str, pitch: int, velocity: int = 0) -> None:

		self.port.send(mido.Message(message_type, channel=self.channel, note=pitch, velocity=velocity))

	def _schedule (self, delay: float, callback: typing.Callable[[], None]) -> None:

		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			callback()
			return

		handle: typing.Optional[asyncio.TimerHandle] = None

		def run () -> None:
			self._pending.discard(handle)
			callback()

		handle = loop.call_later(delay, run)
		self._pending.add(handle)

	def _note_off (self, pitch: int) -> None:

		self._sounding.discard(pitch)
		self._send("note_off", pitch)

	def _note_on (self, pitches: typing.List[int], velocity: int, duration: float) -> None:

		for pitch in pitches:
			self._send("note_on", pitch, velocity)
			self._sounding.add(pitch)
			self._schedule(duration, lambda pitch=pitch: self._note_off(pitch))

	def trigger (self, event: TriggerEvent) -> None:

		velocity = basedrum.midi_utils.velocity_to_midi(event.velocity)

		if velocity == 0:
			return

		pitches = self._pitches(event)

		if event.offset > 0:
			self._schedule(event.offset, lambda: self._note_on(pitches, velocity, event.duration))
		else:
			self._note_on(pitches, velocity, event.duration)

	def release_all (self) -> None:

		for handle in list(self._pending):
			handle.cancel()

		self._pending.clear()

		for pitch in list(self._sounding):
			self._note_off(pitch)

	@property
	def pending (self) -> int:

		return len(self._pending)


# track name -> (channel, default MIDI note)
VOICE_MAP: typing.Dict[str, typing.Tuple[int, int]] = {
	"kick": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.KICK_1),
	"pulse": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.SIDE_STICK),
	"snare": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.SNARE_1),
	"clap": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.HAND_CLAP),
	"hihat909": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.HI_HAT_CLOSED),
	"hihat": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.HI_HAT_OPEN),
	"ride": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.RIDE_1),
	"rumble": (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.LOW_FLOOR_TOM),
	"bass": (0, 33),
	"lead": (1, 57),
	"acid": (2, 45),
}

DRUM_TRACKS = frozenset(name for name, (channel, _) in VOICE_MAP.items() if channel == basedrum.constants.gm_drums.DRUM_CHANNEL)


class AudioEngine:

	"""
	Owns the MIDI output port and the voices built on it.

	Nothing is opened until :meth:`initialize`; nothing is shared between
	engine instances.
	"""

	def __init__ (self, output_device: typing.Optional[str] = None, interactive: bool = False) -> None:

		self.output_device = output_device
		self.interactive = interactive
		self.device_name: typing.Optional[str] = None
		self.port: typing.Any = None
		self._voices: typing.Dict[str, MidiVoice] = {}

	@property
	def initialized (self) -> bool:

		return self.port is not None

	async def initialize (self) -> None:

		"""
		Open the output port.  Calling it again once open does nothing.

		Raises:
			EngineInitError: When no port could be opened.
		"""

		if self.port is not None:
			return

		loop = asyncio.get_running_loop()
		name, port = await loop.run_in_executor(None, basedrum.midi_utils.select_output_device, self.output_device, self.interactive)

		if port is None:
			raise EngineInitError(f"Could not open MIDI output {self.output_device or '(auto)'}")

		self.device_name = name
		self.port = port

		logger.info(f"Audio engine ready on '{name}'")

	def voice (self, track_name: str) -> MidiVoice:

		if self.port is None:
			raise EngineInitError("Audio engine is not initialized")

		if track_name not in self._voices:
			channel, note = VOICE_MAP.get(track_name, (basedrum.constants.gm_drums.DRUM_CHANNEL, basedrum.constants.gm_drums.SIDE_STICK))
			self._voices[track_name] = MidiVoice(self.port, channel, note)

		return self._voices[track_name]

	def voices_for (self, document: basedrum.song.SongDocument) -> typing.Dict[str, MidiVoice]:

		"""One voice per track in ``document``, reusing voices already built."""

		return {name: self.voice(name) for name in document.tracks}

	def release_all (self) -> None:

		for voice in self._voices.values():
			voice.release_all()

	async def dispose (self) -> None:

		"""Silence everything and close the port.  Safe to call more than once."""

		if self.port is None:
			return

		self.release_all()

		try:
			self.port.panic()
			self.port.close()
		except Exception:
			logger.exception("Error while closing MIDI output")

		self.port = None
		self._voices = {}

		logger.info("Audio engine disposed")
