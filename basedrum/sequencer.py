import asyncio
import logging
import time
import typing

import basedrum.constants
import basedrum.constants.durations
import basedrum.constants.velocity
import basedrum.event_emitter
import basedrum.sections
import basedrum.sequence_utils
import basedrum.song
import basedrum.voices


logger = logging.getLogger(__name__)


def _gain (volume_db: float) -> float:

	return basedrum.sequence_utils.db_to_gain(min(volume_db, basedrum.constants.VOLUME_CEILING_DB))


class SongHandle:

	"""
	The one piece of state shared between the control side and the clock.

	Single writer, many readers: control code (generation, expansion, the
	OSC bridge) calls :meth:`publish`, :meth:`set_muted` and
	:meth:`set_volume`; the sequencer reads :attr:`current` exactly once per
	tick and uses that snapshot for the whole tick.  Publishing is a single
	reference assignment, so a reader sees either the old document or the new
	one, never a mix.

	Mute and volume overrides are keyed by track name and outlive document
	swaps, so muting the bass stays in effect after an expansion lands.
	"""

	def __init__ (self, document: typing.Optional[basedrum.song.SongDocument] = None) -> None:

		self._current = document
		self.revision = 0 if document is None else 1
		self._muted: typing.Dict[str, bool] = {}
		self._volumes: typing.Dict[str, float] = {}

	@property
	def current (self) -> typing.Optional[basedrum.song.SongDocument]:

		return self._current

	def publish (self, document: basedrum.song.SongDocument) -> None:

		"""Make ``document`` the one the sequencer plays from the next tick on."""

		if not isinstance(document, basedrum.song.SongDocument):
			raise TypeError("Only validated SongDocument instances can be published")

		self._current = document
		self.revision += 1

		logger.info(f"Published '{document.metadata.title}' ({document.steps} steps, revision {self.revision})")

	def set_muted (self, track: str, muted: typing.Optional[bool]) -> None:

		"""Override a track's mute flag; ``None`` reverts to the document's flag."""

		if muted is None:
			self._muted.pop(track, None)
		else:
			self._muted[track] = bool(muted)

	def is_muted (self, track: str, data: typing.Optional[basedrum.song.TrackData] = None) -> bool:

		if track in self._muted:
			return self._muted[track]

		if data is None and self._current is not None:
			data = self._current.tracks.get(track)

		return bool(data.muted) if data is not None else False

	def set_volume (self, track: str, volume_db: typing.Optional[float]) -> None:

		"""Override a track's level in dB; ``None`` reverts to the document's level."""

		if volume_db is None:
			self._volumes.pop(track, None)
		else:
			self._volumes[track] = float(volume_db)

	def volume_for (self, track: str, data: basedrum.song.TrackData) -> float:

		return self._volumes.get(track, data.volume)


class StepSequencer:

	"""
	Walks the current song document one sixteenth-note step at a time and
	triggers voices.

	The sequencer is either stopped or running.  :meth:`play` toggles,
	:meth:`start` and :meth:`stop` are explicit, and stopping always rewinds
	to step 0.  The step counter only ever increases while running; the step
	played is ``counter % steps`` of whichever document is current at that
	tick, so swapping a 64-step loop for a 512-step arrangement at step 40
	plays step 41 next.

	Events (see :attr:`events`):

	- ``"start"`` / ``"stop"``
	- ``"step"`` - the step within the bar (0-15), every tick
	- ``"bar"`` - the bar index within the document, on change
	- ``"beat_intensity"`` - 1.0, 0.7, 0.4, 0.1, 0.0 over 200 ms after a beat hit
	- ``"document_swap"`` - the new document, on the first tick that plays it
	"""

	def __init__ (
		self,
		handle: SongHandle,
		voices: typing.Optional[typing.Mapping[str, basedrum.voices.Voice]] = None,
		initial_bpm: float = basedrum.constants.DEFAULT_TEMPO,
		section_map: typing.Optional[basedrum.sections.SectionVolumeMap] = None,
		beat_tracks: typing.Iterable[str] = basedrum.constants.BEAT_INTENSITY_TRACKS,
		silence_floor_db: float = basedrum.constants.SILENCE_FLOOR_DB,
		spin_wait: bool = True
	) -> None:

		"""Set up a stopped sequencer.

		Parameters:
			handle: Shared cell holding the document to play.
			voices: Track name -> voice.  Tracks without a voice are silent.
			initial_bpm: Tempo until a document's bpm is applied at start.
			section_map: Per-section dB offsets (defaults to the 32-bar dance layout).
			beat_tracks: Tracks whose hits drive the beat-intensity envelope.
			silence_floor_db: Tracks at or below this level are skipped.
			spin_wait: When True (default), use a hybrid sleep+spin strategy for the
				final sub-millisecond of each step interval.  Set to False to use
				pure ``asyncio.sleep()`` (lower CPU, higher jitter).
		"""

		self.handle = handle
		self.voices: typing.Dict[str, basedrum.voices.Voice] = dict(voices or {})
		self.section_map = section_map or basedrum.sections.SectionVolumeMap()
		self.beat_tracks = frozenset(beat_tracks)
		self.silence_floor_db = silence_floor_db
		self.events = basedrum.event_emitter.EventEmitter()

		self.running = False
		self.render_mode = False
		self.task: typing.Optional[asyncio.Task] = None
		self.start_time = 0.0
		self.step_counter = 0
		self.current_step = -1
		self.current_bar = -1

		self._seen_revision = -1
		self._index_document: typing.Optional[basedrum.song.SongDocument] = None
		self._index_sets: typing.Dict[str, typing.FrozenSet[int]] = {}
		self._ghost_sets: typing.Dict[str, typing.FrozenSet[int]] = {}
		self._pending: typing.Set[asyncio.TimerHandle] = set()

		self._spin_wait = spin_wait
		# Sleep until this close to the next step, then spin
		self._spin_threshold = 0.001

		self.current_bpm: float = 0
		self.seconds_per_step = 0.0
		self.set_bpm(initial_bpm)


	def set_bpm (self, bpm: float) -> None:

		"""
		Instantly change the tempo.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.current_bpm = bpm
		self.seconds_per_step = 60.0 / bpm / basedrum.constants.STEPS_PER_BEAT

		logger.info(f"BPM set to {self.current_bpm:.2f}")


	def set_voices (self, voices: typing.Mapping[str, basedrum.voices.Voice]) -> None:

		"""Replace the voice table (a single assignment; safe between ticks)."""

		self.voices = dict(voices)


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for a sequencer event.
		"""

		self.events.on(event_name, callback)


	async def play (self) -> None:

		"""Toggle: start when stopped, stop (and rewind) when running."""

		if self.running:
			await self.stop()
		else:
			await self.start()


	async def start (self) -> None:

		"""Start playback in a separate asyncio task from step 0."""

		if self.running:
			return

		document = self.handle.current

		if document is not None and document.metadata.bpm != self.current_bpm:
			self.set_bpm(document.metadata.bpm)

		self.step_counter = 0
		self.current_bar = -1
		self.running = True
		self.task = asyncio.create_task(self._run_loop())
		self.task.add_done_callback(self._loop_done)

		logger.info("Sequencer started")

		await self.events.emit_async("start")


	async def stop (self) -> None:

		"""
		Stop playback, cancel everything still scheduled and rewind to step 0.

		Safe to call at any time, including when already stopped.
		"""

		was_running = self.running
		self.running = False

		task = self.task
		self.task = None

		if task is not None and task is not asyncio.current_task() and not task.done():
			task.cancel()
			try:
				await task
			except asyncio.CancelledError:
				pass

		self._cancel_pending()

		for name, voice in self.voices.items():
			try:
				voice.release_all()
			except Exception:
				logger.exception(f"Voice {name!r} failed to release")

		self.step_counter = 0
		self.current_step = -1
		self.current_bar = -1

		if was_running:
			logger.info("Sequencer stopped")
			await self.events.emit_async("stop")


	def _loop_done (self, task: asyncio.Task) -> None:

		"""Log a loop that died on its own and mark the sequencer stopped."""

		if task.cancelled():
			return

		error = task.exception()

		if error is None:
			return

		logger.error(f"Sequencer loop failed: {error!r}")

		if self.task is task:
			self.running = False
			self.task = None


	def _cancel_pending (self) -> None:

		for handle in list(self._pending):
			handle.cancel()

		self._pending.clear()


	async def render_steps (self, count: int, start_time: float = 0.0) -> typing.List[basedrum.voices.TriggerEvent]:

		"""
		Play ``count`` steps as fast as possible, simulating time instead of
		waiting for the wall clock.

		The counter continues from where it is, so several calls (with document
		swaps in between) behave like one continuous performance.  Returns
		every trigger issued.
		"""

		self.render_mode = True
		self.running = True
		triggers: typing.List[basedrum.voices.TriggerEvent] = []
		step_time = start_time + self.step_counter * self.seconds_per_step

		try:
			for _ in range(count):

				if not self.running:
					break

				triggers.extend(self.process_step(self.step_counter, step_time))
				self.step_counter += 1
				step_time += self.seconds_per_step

				# Let queued tasks run between steps
				await asyncio.sleep(0)

		finally:
			self.render_mode = False
			self.running = False

		return triggers


	async def _run_loop (self) -> None:

		"""Playback loop driven by the internal wall clock.

		The loop sleeps between steps to hold tempo, spinning for the final
		sub-millisecond when ``spin_wait`` is on.
		"""

		self.start_time = time.perf_counter()
		next_step_time = self.start_time

		while self.running:

			current_time = time.perf_counter()

			while current_time >= next_step_time and self.running:
				self.process_step(self.step_counter, next_step_time - self.start_time)
				self.step_counter += 1
				next_step_time += self.seconds_per_step

			if not self.running:
				break

			sleep_time = next_step_time - time.perf_counter()

			if sleep_time > 0:
				if self._spin_wait and sleep_time > self._spin_threshold:
					await asyncio.sleep(sleep_time - self._spin_threshold)
					while time.perf_counter() < next_step_time:
						pass
				else:
					await asyncio.sleep(sleep_time)
			else:
				await asyncio.sleep(0)


	def _refresh_indices (self, document: basedrum.song.SongDocument) -> None:

		"""Precompute per-track step sets the first time a document is played."""

		if document is self._index_document:
			return

		self._index_document = document
		self._index_sets = {name: frozenset(track.pattern) for name, track in document.tracks.items()}
		self._ghost_sets = {name: frozenset(track.ghost_notes or ()) for name, track in document.tracks.items()}


	def _build_trigger (
		self,
		name: str,
		track: basedrum.song.TrackData,
		step: int,
		bar: int,
		volume_db: float,
		tick_time: float
	) -> typing.Optional[basedrum.voices.TriggerEvent]:

		"""The trigger for ``track`` at ``step``, or ``None`` when it does not sound."""

		if step in self._index_sets[name]:

			gain = _gain(volume_db + self.section_map.volume_offset(bar, name))
			velocity = track.velocity_at(step) or basedrum.constants.velocity.ROLE_VELOCITY.get(name, basedrum.constants.velocity.DEFAULT_VELOCITY)
			steps = basedrum.constants.durations.TRACK_DURATION_STEPS.get(name, basedrum.constants.durations.DEFAULT)

			return basedrum.voices.TriggerEvent(
				note = track.note_at(step) or basedrum.constants.ROLE_DEFAULT_NOTES.get(name),
				duration = steps * self.seconds_per_step,
				velocity = velocity * gain,
				time = tick_time,
				offset = basedrum.constants.TRIGGER_OFFSETS.get(name, 0.0),
				track = name,
				step = step
			)

		if step in self._ghost_sets[name]:

			return basedrum.voices.TriggerEvent(
				note = basedrum.constants.ROLE_DEFAULT_NOTES.get(name),
				duration = basedrum.constants.durations.GHOST * self.seconds_per_step,
				velocity = basedrum.constants.GHOST_NOTE_VELOCITY * _gain(volume_db),
				time = tick_time,
				track = name,
				step = step,
				ghost = True
			)

		return None


	def process_step (self, step_counter: int, tick_time: float) -> typing.List[basedrum.voices.TriggerEvent]:

		"""
		Do all the work for one tick and return the triggers issued.

		The document is read once; every trigger of the tick carries the same
		``tick_time``.  A track whose trigger cannot be built and a voice that
		raises are both logged and skipped, a track without a voice is silent,
		and async listeners are scheduled rather than awaited, so nothing here
		can stop playback.
		"""

		document = self.handle.current

		if document is None:
			return []

		if self.handle.revision != self._seen_revision:
			if self._seen_revision != -1:
				self.events.emit("document_swap", document)
			self._seen_revision = self.handle.revision

		self._refresh_indices(document)

		step = step_counter % document.steps
		bar = step // basedrum.constants.STEPS_PER_BAR

		if bar != self.current_bar:
			self.current_bar = bar
			self.events.emit("bar", bar)

		triggers: typing.List[basedrum.voices.TriggerEvent] = []
		beat_hit = False

		for name, track in document.tracks.items():

			if self.handle.is_muted(name, track):
				continue

			volume_db = self.handle.volume_for(name, track)

			if volume_db <= self.silence_floor_db:
				continue

			try:
				event = self._build_trigger(name, track, step, bar, volume_db, tick_time)
			except Exception:
				logger.exception(f"Track {name!r} could not be built on step {step}")
				continue

			if event is None:
				continue

			triggers.append(event)

			if name in self.beat_tracks and not event.ghost:
				beat_hit = True

			voice = self.voices.get(name)

			if voice is None:
				continue

			try:
				voice.trigger(event)
			except Exception:
				logger.exception(f"Voice {name!r} failed on step {step}")

		self.current_step = step
		self.events.emit("step", step % basedrum.constants.STEPS_PER_BAR)

		if beat_hit:
			self._start_intensity_envelope()

		return triggers


	def _emit_intensity (self, value: float, handle: typing.Optional[asyncio.TimerHandle] = None) -> None:

		if handle is not None:
			self._pending.discard(handle)

		self.events.emit("beat_intensity", value)


	def _start_intensity_envelope (self) -> None:

		"""Emit 1.0 now and schedule the decay; a new hit replaces an unfinished decay."""

		self._cancel_pending()

		try:
			loop = asyncio.get_running_loop()
		except RuntimeError:
			loop = None

		for delay, value in basedrum.constants.INTENSITY_ENVELOPE:

			if delay <= 0 or loop is None or self.render_mode:
				self._emit_intensity(value)
				continue

			holder: typing.List[asyncio.TimerHandle] = []
			handle = loop.call_later(delay, lambda value=value, holder=holder: self._emit_intensity(value, holder[0]))
			holder.append(handle)
			self._pending.add(handle)


	@property
	def pending_callbacks (self) -> int:

		return len(self._pending)
