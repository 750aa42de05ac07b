"""Template expansion of a loop into a multi-bar arrangement.

:func:`expand_song` is the deterministic local counterpart of the remote
producer in :mod:`basedrum.expansion`: it answers with the same shape (32
bars, 512 steps, same tracks, suffixed title) by tiling each track's loop
across the bars where the arrangement lets it play.
"""

import logging
import typing

import pydantic

import basedrum.constants
import basedrum.song


logger = logging.getLogger(__name__)


ALL = "all"

# (section, first bar, last bar, active tracks) with 1-based inclusive bars
ARRANGEMENT_PLAN: typing.List[typing.Tuple[str, int, int, typing.Union[str, typing.List[str]]]] = [
	("intro", 1, 4, ["kick", "pulse"]),
	("buildup1", 5, 8, ["kick", "pulse", "hihat909"]),
	("buildup2", 9, 16, ["kick", "pulse", "hihat909", "bass"]),
	("buildup3", 17, 20, ["kick", "hihat909", "bass", "lead"]),
	("breakdown1", 21, 22, ["kick", "bass"]),
	("rebuild1", 23, 24, ["kick", "hihat909", "bass", "lead"]),
	("peak1", 25, 26, ALL),
	("breakdown2", 27, 28, ["kick", "lead"]),
	("peak2", 29, 32, ALL),
]


def default_arrangement (bars: int = basedrum.constants.EXPANDED_BARS) -> typing.Dict[str, typing.Dict[str, typing.Any]]:

	"""
	The dance-track arrangement in document form, fitted to ``bars``.

	Sections past the end are dropped; the final section stretches to cover
	any bars beyond 32.
	"""

	arrangement: typing.Dict[str, typing.Dict[str, typing.Any]] = {}

	for index, (name, first, last, active) in enumerate(ARRANGEMENT_PLAN):

		if index == len(ARRANGEMENT_PLAN) - 1:
			last = max(last, bars)

		section_bars = [bar for bar in range(first, last + 1) if bar <= bars]

		if section_bars:
			arrangement[name] = {"bars": section_bars, "activeTracks": active if active == ALL else list(active)}

	return arrangement


DEFAULT_ARRANGEMENT = default_arrangement()


def _section_for_bar (
	arrangement: typing.Optional[typing.Mapping[str, basedrum.song.ArrangementSection]],
	bar: int
) -> typing.Optional[basedrum.song.ArrangementSection]:

	if not arrangement:
		return None

	for section in arrangement.values():
		if bar + 1 in section.bars:
			return section

	return None


def _plays (arrangement: typing.Optional[typing.Mapping[str, basedrum.song.ArrangementSection]], name: str, bar: int) -> bool:

	section = _section_for_bar(arrangement, bar)

	return section is None or section.includes(name)


def active_tracks (document: basedrum.song.SongDocument, bar: int) -> typing.List[str]:

	"""
	Names of the tracks that play in 0-based ``bar``, in document order.

	Without an arrangement, or for a bar no section lists, every track plays.
	"""

	return [name for name in document.tracks if _plays(document.arrangement, name, bar)]


def _tile_track (
	track: basedrum.song.TrackData,
	loop_bars: int,
	plays_in: typing.Callable[[int], bool],
	bars: int
) -> typing.Dict[str, typing.Any]:

	"""Copy each source bar's hits (with notes, velocity and ghosts) into every target bar that plays."""

	per_bar = basedrum.constants.STEPS_PER_BAR
	note_for = dict(zip(track.pattern, track.notes)) if track.notes else {}
	ghosts = set(track.ghost_notes or ())

	pattern: typing.List[int] = []
	notes: typing.List[str] = []
	ghost_notes: typing.List[int] = []
	velocity: typing.List[float] = [0.0] * (bars * per_bar)

	source_hits = sorted(track.pattern)

	for bar in range(bars):

		if not plays_in(bar):
			continue

		source_start = (bar % loop_bars) * per_bar
		target_start = bar * per_bar

		for step in source_hits:
			if source_start <= step < source_start + per_bar:
				pattern.append(target_start + step - source_start)
				if step in note_for:
					notes.append(note_for[step])

		for offset in range(per_bar):
			if source_start + offset in ghosts:
				ghost_notes.append(target_start + offset)
			level = track.velocity_at(source_start + offset)
			if level is not None:
				velocity[target_start + offset] = level

	data: typing.Dict[str, typing.Any] = {
		"pattern": pattern,
		"muted": track.muted,
		"volume": track.volume,
	}

	if track.notes is not None:
		data["notes"] = notes

	if track.velocity is not None:
		data["velocity"] = velocity

	if track.ghost_notes is not None:
		data["ghostNotes"] = ghost_notes

	return data


def expand_song (
	document: basedrum.song.SongDocument,
	bars: int = basedrum.constants.EXPANDED_BARS,
	arrangement: typing.Optional[typing.Mapping[str, typing.Any]] = None
) -> basedrum.song.SongDocument:

	"""
	Expand a loop into a ``bars``-long arrangement.

	The source document's bars repeat cyclically; each track is copied only
	into the bars whose section lists it (or says ``"all"``).  The title gains
	a ``"- N-Bar Mix"`` suffix and the result is validated before it is
	returned.

	Parameters:
		document: The loop to expand (usually one bar).
		bars: Target length in bars.
		arrangement: Document-form arrangement; defaults to :func:`default_arrangement`.

	Raises:
		basedrum.song.SongValidationError: If the expansion would not be a valid
			document (for example ``bars`` above 128).
	"""

	if arrangement is None:
		arrangement = default_arrangement(bars)

	sections: typing.Dict[str, basedrum.song.ArrangementSection] = {}
	issues: typing.List[str] = []

	for name, section in arrangement.items():
		try:
			sections[name] = basedrum.song.ArrangementSection.model_validate(section)
		except pydantic.ValidationError as exc:
			issues.extend(f"arrangement.{name}.{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors())

	if issues:
		raise basedrum.song.SongValidationError(issues)

	tracks = {
		name: _tile_track(track, document.bars, lambda bar, name=name: _plays(sections, name, bar), bars)
		for name, track in document.tracks.items()
	}

	metadata = document.metadata.model_dump(mode="json")
	metadata.update({
		"title": f"{document.metadata.title} - {bars}-Bar Mix",
		"bars": bars,
		"steps": bars * basedrum.constants.STEPS_PER_BAR,
	})

	expanded = basedrum.song.validate_song({
		"metadata": metadata,
		"effects": document.effects.model_dump(by_alias=True, mode="json"),
		"tracks": tracks,
		"arrangement": {name: section.model_dump(by_alias=True, mode="json") for name, section in sections.items()},
	})

	logger.info(f"Expanded '{document.metadata.title}' from {document.bars} to {bars} bars")

	return expanded
