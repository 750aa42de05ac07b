"""The ``basedrum-v1`` song document: schema, validation and JSON round-trip.

A :class:`SongDocument` is the only thing the sequencer plays.  Documents
are frozen; every revision (a mute, an expansion, a remote rewrite) is a new
object that has passed validation, and the sequencer swaps to it by
reference.  Validation is all-or-nothing: an invalid candidate is rejected
whole and the caller keeps whatever it had before.

Field names are snake_case in Python and camelCase on the wire
(``startFreq``, ``roomSize``, ``ghostNotes``, ``activeTracks``).
"""

import datetime
import json
import logging
import typing

import pydantic

import basedrum.constants


logger = logging.getLogger(__name__)


StepIndex = typing.Annotated[pydantic.StrictInt, pydantic.Field(ge=0, le=basedrum.constants.STEPS_MAX - 1)]
BarNumber = typing.Annotated[pydantic.StrictInt, pydantic.Field(ge=1, le=basedrum.constants.BARS_MAX)]
UnitFloat = typing.Annotated[pydantic.StrictFloat, pydantic.Field(ge=0.0, le=1.0)]
Frequency = typing.Annotated[pydantic.StrictFloat, pydantic.Field(ge=basedrum.constants.FREQ_MIN, le=basedrum.constants.FREQ_MAX)]


class SongValidationError (ValueError):

	"""
	A candidate document was rejected.

	``issues`` lists every problem found as ``"path: message"`` strings, so a
	UI can show them all at once rather than one per attempt.
	"""

	def __init__ (self, issues: typing.List[str]) -> None:

		self.issues = list(issues)
		super().__init__("Invalid song document: " + "; ".join(self.issues))


class _DocumentIssues (ValueError):

	"""Cross-field problems collected by the document-level validator."""

	def __init__ (self, issues: typing.List[str]) -> None:

		self.issues = issues
		super().__init__("; ".join(issues))


class _Model (pydantic.BaseModel):

	model_config = pydantic.ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Metadata (_Model):

	title: str = pydantic.Field(min_length=1)
	artist: str = pydantic.Field(min_length=1)
	version: str
	created: str
	bpm: pydantic.StrictInt = pydantic.Field(ge=basedrum.constants.BPM_MIN, le=basedrum.constants.BPM_MAX)
	bars: pydantic.StrictInt = pydantic.Field(ge=basedrum.constants.BARS_MIN, le=basedrum.constants.BARS_MAX)
	steps: pydantic.StrictInt = pydantic.Field(ge=basedrum.constants.STEPS_MIN, le=basedrum.constants.STEPS_MAX)
	format: typing.Literal["basedrum-v1"]

	@pydantic.field_validator("created")
	@classmethod
	def _check_created (cls, value: str) -> str:

		try:
			datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
		except ValueError:
			raise ValueError(f"not an ISO-8601 timestamp: {value!r}")

		return value


class FilterEffect (_Model):

	cutoff: UnitFloat
	type: str
	start_freq: Frequency = pydantic.Field(alias="startFreq")
	end_freq: Frequency = pydantic.Field(alias="endFreq")


class ReverbEffect (_Model):

	wet: UnitFloat
	room_size: UnitFloat = pydantic.Field(alias="roomSize")
	decay: pydantic.StrictFloat = pydantic.Field(ge=0.0, le=basedrum.constants.REVERB_DECAY_MAX)


class Effects (_Model):

	filter: FilterEffect
	reverb: ReverbEffect


class TrackData (_Model):

	"""
	One instrument lane.

	``pattern`` holds the step indices that trigger.  ``notes`` runs parallel
	to ``pattern`` (the n-th hit plays the n-th note; comma-separated names
	form a chord).  ``velocity`` is indexed by absolute step.  ``volume`` is
	in dB.
	"""

	pattern: typing.Tuple[StepIndex, ...]
	notes: typing.Optional[typing.Tuple[str, ...]] = None
	velocity: typing.Optional[typing.Tuple[UnitFloat, ...]] = None
	ghost_notes: typing.Optional[typing.Tuple[StepIndex, ...]] = pydantic.Field(default=None, alias="ghostNotes")
	muted: pydantic.StrictBool
	volume: pydantic.StrictFloat = pydantic.Field(allow_inf_nan=False)

	@pydantic.field_validator("pattern")
	@classmethod
	def _check_unique (cls, value: typing.Tuple[int, ...]) -> typing.Tuple[int, ...]:

		if len(set(value)) != len(value):
			raise ValueError("step indices must be unique")

		return value

	def note_at (self, step: int) -> typing.Optional[str]:

		"""The note for the hit on ``step``, or ``None`` when the track has no note there."""

		if not self.notes or step not in self.pattern:
			return None

		position = self.pattern.index(step)

		return self.notes[position] if position < len(self.notes) else None

	def velocity_at (self, step: int) -> typing.Optional[float]:

		if self.velocity is None or step >= len(self.velocity):
			return None

		return self.velocity[step]


class ArrangementSection (_Model):

	bars: typing.Tuple[BarNumber, ...]
	active_tracks: typing.Union[typing.Literal["all"], typing.Tuple[str, ...]] = pydantic.Field(alias="activeTracks")

	def includes (self, track_name: str) -> bool:

		return self.active_tracks == "all" or track_name in self.active_tracks


class SongDocument (_Model):

	"""
	A complete, validated song.

	Example:
		```python
		doc = basedrum.song.validate_song(json.load(fp))
		doc.metadata.steps      # 16
		doc.tracks["kick"].pattern  # (0, 4, 8, 12)

		louder = doc.with_tracks({"kick": doc.tracks["kick"].model_copy(update={"volume": 0.0})})
		```
	"""

	metadata: Metadata
	effects: Effects
	tracks: typing.Dict[str, TrackData]
	arrangement: typing.Optional[typing.Dict[str, ArrangementSection]] = None

	@pydantic.model_validator(mode="after")
	def _check_document (self) -> "SongDocument":

		issues: typing.List[str] = []
		steps = self.metadata.steps
		expected = self.metadata.bars * basedrum.constants.STEPS_PER_BAR

		if steps != expected:
			issues.append(f"metadata.steps: must equal bars x {basedrum.constants.STEPS_PER_BAR} ({expected}), got {steps}")

		for name, track in self.tracks.items():

			out_of_range = [i for i in track.pattern if i >= steps]
			if out_of_range:
				issues.append(f"tracks.{name}.pattern: indices {out_of_range} not below steps ({steps})")

			ghost_out = [i for i in (track.ghost_notes or ()) if i >= steps]
			if ghost_out:
				issues.append(f"tracks.{name}.ghostNotes: indices {ghost_out} not below steps ({steps})")

		if issues:
			raise _DocumentIssues(issues)

		return self

	@property
	def steps (self) -> int:
		return self.metadata.steps

	@property
	def bars (self) -> int:
		return self.metadata.bars

	def with_tracks (self, tracks: typing.Mapping[str, typing.Any]) -> "SongDocument":

		"""Return a validated copy with some tracks replaced or added."""

		data = song_to_dict(self)

		for name, track in tracks.items():
			data["tracks"][name] = track.model_dump(by_alias=True, mode="json", exclude_none=True) if isinstance(track, TrackData) else track

		return validate_song(data)

	def with_metadata (self, **changes: typing.Any) -> "SongDocument":

		"""Return a validated copy with metadata fields changed (snake_case names)."""

		data = song_to_dict(self)
		metadata = self.metadata.model_copy(update=changes)
		data["metadata"] = metadata.model_dump(by_alias=True, mode="json")

		return validate_song(data)


def _format_location (location: typing.Tuple[typing.Any, ...]) -> str:

	return ".".join(str(part) for part in location) or "(document)"


def _issues_from (error: pydantic.ValidationError) -> typing.List[str]:

	issues: typing.List[str] = []

	for detail in error.errors():

		cause = detail.get("ctx", {}).get("error")

		if isinstance(cause, _DocumentIssues):
			issues.extend(cause.issues)
			continue

		issues.append(f"{_format_location(detail['loc'])}: {detail['msg']}")

	return issues


def validate_song (data: typing.Any) -> SongDocument:

	"""
	Validate raw data (usually parsed JSON) into a :class:`SongDocument`.

	Raises:
		SongValidationError: Listing every problem found.  Nothing is accepted
			partially.
	"""

	if isinstance(data, SongDocument):
		return data

	try:
		return SongDocument.model_validate(data)

	except pydantic.ValidationError as exc:
		raise SongValidationError(_issues_from(exc)) from exc


def safe_validate (data: typing.Any) -> typing.Tuple[typing.Optional[SongDocument], typing.Optional[SongValidationError]]:

	"""Like :func:`validate_song`, but returns ``(document, None)`` or ``(None, error)``."""

	try:
		return validate_song(data), None

	except SongValidationError as exc:
		return None, exc


def parse_song_json (text: str) -> SongDocument:

	"""Parse and validate a JSON string.  Malformed JSON is a validation error too."""

	try:
		data = json.loads(text)

	except json.JSONDecodeError as exc:
		raise SongValidationError([f"(document): invalid JSON: {exc.msg} at line {exc.lineno} column {exc.colno}"]) from exc

	return validate_song(data)


def song_to_dict (document: SongDocument) -> typing.Dict[str, typing.Any]:

	"""Plain JSON-compatible dict with camelCase keys; absent optionals are omitted."""

	return document.model_dump(by_alias=True, mode="json", exclude_none=True)


def song_to_json (document: SongDocument, indent: typing.Optional[int] = 2) -> str:

	return json.dumps(song_to_dict(document), indent=indent)


def now_iso () -> str:

	"""Current UTC time as an ISO-8601 string with a ``Z`` suffix."""

	return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_metadata (title: str, bpm: int, bars: int = 1, artist: str = "BaseDrum", created: typing.Optional[str] = None) -> Metadata:

	return Metadata(
		title = title,
		artist = artist,
		version = "1.0",
		created = created or now_iso(),
		bpm = bpm,
		bars = bars,
		steps = bars * basedrum.constants.STEPS_PER_BAR,
		format = basedrum.constants.SONG_FORMAT
	)


def neutral_effects () -> typing.Dict[str, typing.Any]:

	"""Wire-shaped effects block with the filter fully open and a light reverb."""

	return {
		"filter": {"cutoff": 0.0, "type": "lowpass", "startFreq": basedrum.constants.FREQ_MAX, "endFreq": basedrum.constants.FREQ_MAX},
		"reverb": {"wet": 0.1, "roomSize": 0.7, "decay": 2.0},
	}
