"""The top-level object tying generation, documents and playback together.

A :class:`Session` owns one audio engine, one :class:`~basedrum.sequencer.SongHandle`
and one sequencer.  Everything that produces a new document (generation,
onboarding, loading, expansion) validates it first and then swaps it in with
a single publish; anything that fails leaves the current document playing.

Example:
	```python
	session = basedrum.Session(basedrum.config.load_config())
	session.generate(user_data)
	await session.initialize()
	await session.play()
	...
	await session.expand_remote()
	...
	await session.dispose()
	```
"""

import logging
import typing

import basedrum.arrangement
import basedrum.config
import basedrum.constants
import basedrum.constraints
import basedrum.expansion
import basedrum.pattern_generator
import basedrum.sections
import basedrum.sequencer
import basedrum.song
import basedrum.threshold_patterns
import basedrum.user_data
import basedrum.voices


logger = logging.getLogger(__name__)


UserDataInput = typing.Union[None, basedrum.user_data.UserDataVector, typing.Mapping[str, typing.Any]]


def _user_data (user_data: UserDataInput) -> typing.Optional[basedrum.user_data.UserDataVector]:

	if user_data is None or isinstance(user_data, basedrum.user_data.UserDataVector):
		return user_data

	return basedrum.user_data.UserDataVector.from_dict(user_data)


class Session:

	"""
	One user's playback session.

	Parameters:
		config: Settings; defaults to :class:`~basedrum.config.SessionConfig()`.
		engine: Audio engine to drive; one is created from ``config`` when omitted.
		voices: Fixed track -> voice table.  When given, the engine is never
			opened and these voices are used for every document (offline
			rendering, tests).
	"""

	def __init__ (
		self,
		config: typing.Optional[basedrum.config.SessionConfig] = None,
		engine: typing.Optional[basedrum.voices.AudioEngine] = None,
		voices: typing.Optional[typing.Mapping[str, basedrum.voices.Voice]] = None
	) -> None:

		self.config = config or basedrum.config.SessionConfig()
		self.engine = engine or basedrum.voices.AudioEngine(self.config.output_device, self.config.interactive)
		self.handle = basedrum.sequencer.SongHandle()
		self.sequencer = basedrum.sequencer.StepSequencer(
			self.handle,
			silence_floor_db = self.config.silence_floor_db,
			spin_wait = self.config.spin_wait
		)
		self.tracks: typing.List[basedrum.pattern_generator.GeneratedTrack] = []
		self.last_error: typing.Optional[Exception] = None

		self._fixed_voices = dict(voices) if voices is not None else None
		self._initialized = False

		if self._fixed_voices is not None:
			self.sequencer.set_voices(self._fixed_voices)

	@property
	def document (self) -> typing.Optional[basedrum.song.SongDocument]:

		return self.handle.current

	@property
	def initialized (self) -> bool:

		return self._initialized

	@property
	def playing (self) -> bool:

		return self.sequencer.running

	def _swap (self, document: basedrum.song.SongDocument) -> basedrum.song.SongDocument:

		"""Publish ``document`` and point the mix and voices at it."""

		self.sequencer.section_map = basedrum.sections.SectionVolumeMap.from_arrangement(document.arrangement)

		if self._fixed_voices is None and self.engine.initialized:
			self.sequencer.set_voices(self.engine.voices_for(document))

		self.handle.publish(document)

		return document

	# Producing documents

	def generate (self, user_data: UserDataInput = None, title: typing.Optional[str] = None) -> basedrum.song.SongDocument:

		"""Generate a loop from ``user_data`` with the stochastic generator and play it next."""

		data = _user_data(user_data)
		constraints = basedrum.constraints.extract_constraints(data)
		self.tracks = basedrum.pattern_generator.generate_tracks(data, constraints)

		for track in self.tracks:
			logger.debug(f"{track.name}: {track.reason}")

		document = basedrum.pattern_generator.tracks_to_song(
			self.tracks,
			constraints,
			title = title or f"BaseDrum in {constraints.key} {constraints.mode}"
		)

		return self._swap(document)

	def onboard (self, user_data: UserDataInput = None, title: str = "My BaseDrum Beat") -> basedrum.song.SongDocument:

		"""Build the rule-based onboarding loop and play it next."""

		return self._swap(basedrum.threshold_patterns.build_onboarding_song(_user_data(user_data), title=title))

	def load (self, data: typing.Any) -> basedrum.song.SongDocument:

		"""
		Validate ``data`` and play it next.

		Raises:
			basedrum.song.SongValidationError: The current document is kept.
		"""

		try:
			document = basedrum.song.validate_song(data)
		except basedrum.song.SongValidationError as exc:
			self.last_error = exc
			logger.warning(f"Rejected song document ({len(exc.issues)} issues); keeping the current one")
			raise

		return self._swap(document)

	def load_json (self, text: str) -> basedrum.song.SongDocument:

		"""Like :meth:`load`, for a JSON string."""

		try:
			document = basedrum.song.parse_song_json(text)
		except basedrum.song.SongValidationError as exc:
			self.last_error = exc
			logger.warning(f"Rejected song JSON ({len(exc.issues)} issues); keeping the current one")
			raise

		return self._swap(document)

	def _require_document (self) -> basedrum.song.SongDocument:

		document = self.handle.current

		if document is None:
			raise RuntimeError("No song loaded - call generate(), onboard() or load() first")

		return document

	def expand_local (self, bars: int = basedrum.constants.EXPANDED_BARS) -> basedrum.song.SongDocument:

		"""Expand the current loop with the template arrangement and play it next."""

		return self._swap(basedrum.arrangement.expand_song(self._require_document(), bars=bars))

	async def expand_remote (self, client: typing.Optional[basedrum.expansion.ExpansionClient] = None) -> basedrum.song.SongDocument:

		"""
		Ask the remote producer for a 32-bar arrangement of the current document.

		On any failure the error is logged, kept in :attr:`last_error`, and the
		current document stays in place.  Returns whichever document is current
		afterwards.
		"""

		document = self._require_document()

		if client is None:
			if not self.config.expansion_endpoint:
				raise ValueError("No expansion endpoint configured")
			client = basedrum.expansion.ExpansionClient(self.config.expansion_endpoint, self.config.expansion_timeout)

		try:
			expanded = await client.expand(document)
		except basedrum.expansion.ExpansionError as exc:
			self.last_error = exc
			logger.warning(f"Remote expansion failed, keeping '{document.metadata.title}': {exc}")
			return document

		self.last_error = None

		return self._swap(expanded)

	# Live control

	def set_muted (self, track: str, muted: typing.Optional[bool]) -> None:

		self.handle.set_muted(track, muted)

		if muted is None:
			logger.info(f"Track {track!r} mute reverted to document")
		else:
			logger.info(f"Track {track!r} {'muted' if muted else 'unmuted'}")

	def set_volume (self, track: str, volume_db: typing.Optional[float]) -> None:

		self.handle.set_volume(track, volume_db)

	def set_bpm (self, bpm: float) -> None:

		self.sequencer.set_bpm(bpm)

	def on_step (self, callback: typing.Callable[[int], typing.Any]) -> None:

		self.sequencer.on_event("step", callback)

	def on_beat_intensity (self, callback: typing.Callable[[float], typing.Any]) -> None:

		self.sequencer.on_event("beat_intensity", callback)

	# Lifecycle

	async def initialize (self) -> None:

		"""
		Bring up the audio engine.  Must succeed before :meth:`play`.

		Raises:
			basedrum.voices.EngineInitError: Nothing is left half-open; call
				again to retry.
		"""

		if self._initialized:
			return

		if self._fixed_voices is None:
			await self.engine.initialize()

			if self.handle.current is not None:
				self.sequencer.set_voices(self.engine.voices_for(self.handle.current))

		self._initialized = True

	async def play (self) -> None:

		"""Toggle playback."""

		if not self._initialized:
			raise basedrum.voices.EngineInitError("Call initialize() before play()")

		if not self.sequencer.running:
			self._require_document()

		await self.sequencer.play()

	async def stop (self) -> None:

		await self.sequencer.stop()

	async def render (self, steps: int) -> typing.List[basedrum.voices.TriggerEvent]:

		"""Play ``steps`` steps offline from the start and return the triggers."""

		document = self._require_document()

		if self.sequencer.running:
			raise RuntimeError("Stop playback before rendering")

		self.sequencer.set_bpm(document.metadata.bpm)
		self.sequencer.step_counter = 0

		return await self.sequencer.render_steps(steps)

	async def dispose (self) -> None:

		"""Stop playback and release the engine.  Safe to call more than once."""

		await self.sequencer.stop()

		if self._fixed_voices is None:
			await self.engine.dispose()

		self._initialized = False
