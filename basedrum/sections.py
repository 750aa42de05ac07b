"""Section-aware mixing: bar ranges and per-instrument dB offsets.

A long arrangement builds and breaks down by nudging track levels per
section rather than by rewriting patterns.  :class:`SectionVolumeMap` is a
pure lookup from a 0-based bar index to a section name and from
``(section, track)`` to a dB offset.  Both tables are plain data and can be
swapped for another song style.
"""

import dataclasses
import typing

import basedrum.song


@dataclasses.dataclass(frozen=True)
class SectionRange:

	"""Bars ``start`` (inclusive) to ``end`` (exclusive, ``None`` = open-ended), 0-based."""

	name: str
	start: int
	end: typing.Optional[int] = None

	def contains (self, bar: int) -> bool:

		return bar >= self.start and (self.end is None or bar < self.end)

	@property
	def bars (self) -> typing.Optional[int]:

		return None if self.end is None else self.end - self.start


@dataclasses.dataclass
class SectionInfo:

	"""
	Where a bar sits in the arrangement.

	Attributes:
		name: Section name (e.g. ``"buildup2"``).
		bar: Bar index within the section (0-indexed).
		bars: Length of the section, or ``None`` when it runs to the end.
		index: Position of the section in the range table.
	"""

	name: str
	bar: int
	bars: typing.Optional[int]
	index: int

	@property
	def progress (self) -> float:

		"""How far through the section we are (0.0 to ~1.0); 0.0 for open-ended sections."""

		if not self.bars:
			return 0.0

		return self.bar / self.bars


DEFAULT_RANGES: typing.List[SectionRange] = [
	SectionRange("intro", 0, 2),
	SectionRange("buildup1", 2, 8),
	SectionRange("buildup2", 8, 16),
	SectionRange("buildup3", 16, 20),
	SectionRange("breakdown1", 20, 22),
	SectionRange("rebuild1", 22, 24),
	SectionRange("peak1", 24, 26),
	SectionRange("breakdown2", 26, 28),
	SectionRange("peak2", 28, None),
]

DEFAULT_ADJUSTMENTS: typing.Dict[str, typing.Dict[str, float]] = {
	"intro": {"kick": 0},
	"buildup1": {"kick": 0, "snare": -2, "hihat909": -2},
	"buildup2": {"kick": 0, "snare": 0, "hihat909": 0, "clap": -3, "bass": -2},
	"buildup3": {"kick": 0, "bass": 0, "lead": -3, "clap": 0},
	"breakdown1": {"kick": 2, "bass": 1},
	"rebuild1": {"kick": 0, "hihat909": 1, "lead": -1},
	"peak1": {"kick": 0, "bass": 0, "lead": 0, "acid": -2, "snare": 1},
	"breakdown2": {"kick": 3, "lead": 2},
	"peak2": {"kick": 0, "bass": 1, "lead": 1, "acid": 0, "snare": 2},
}


class SectionVolumeMap:

	"""
	Look up the section and per-track dB offset for a bar.

	Example:
		```python
		sections = SectionVolumeMap()
		sections.section_for_bar(20)            # 'breakdown1'
		sections.volume_offset(20, "kick")      # 2.0
		sections.volume_offset(20, "ride")      # 0.0
		```
	"""

	def __init__ (
		self,
		ranges: typing.Optional[typing.Sequence[SectionRange]] = None,
		adjustments: typing.Optional[typing.Mapping[str, typing.Mapping[str, float]]] = None
	) -> None:

		self.ranges: typing.List[SectionRange] = sorted(ranges if ranges is not None else DEFAULT_RANGES, key=lambda r: r.start)
		self.adjustments: typing.Dict[str, typing.Dict[str, float]] = {
			name: dict(offsets) for name, offsets in (adjustments if adjustments is not None else DEFAULT_ADJUSTMENTS).items()
		}

		if not self.ranges:
			raise ValueError("SectionVolumeMap needs at least one section range")

	@classmethod
	def from_arrangement (
		cls,
		arrangement: typing.Optional[typing.Mapping[str, basedrum.song.ArrangementSection]],
		adjustments: typing.Optional[typing.Mapping[str, typing.Mapping[str, float]]] = None
	) -> "SectionVolumeMap":

		"""
		Derive ranges from a document's arrangement (1-based bar lists).

		Each section spans from its lowest to its highest listed bar.  The
		section that starts last is left open-ended so that it also covers any
		bars past the arrangement.  Without an arrangement the default ranges
		are used.
		"""

		if not arrangement:
			return cls(adjustments=adjustments)

		spans = sorted(
			((min(section.bars) - 1, max(section.bars), name) for name, section in arrangement.items() if section.bars),
			key=lambda span: span[0]
		)

		if not spans:
			return cls(adjustments=adjustments)

		ranges = [SectionRange(name, start, end) for start, end, name in spans[:-1]]
		last_start, _, last_name = spans[-1]
		ranges.append(SectionRange(last_name, last_start, None))

		return cls(ranges, adjustments)

	def _locate (self, bar: int) -> typing.Tuple[int, SectionRange]:

		for index, section in enumerate(self.ranges):
			if section.contains(bar):
				return index, section

		# Gaps belong to the latest section that started before them
		candidates = [(i, s) for i, s in enumerate(self.ranges) if s.start <= bar]

		return candidates[-1] if candidates else (0, self.ranges[0])

	def section_for_bar (self, bar: int) -> str:

		return self._locate(bar)[1].name

	def section_info (self, bar: int) -> SectionInfo:

		index, section = self._locate(bar)

		return SectionInfo(name=section.name, bar=max(0, bar - section.start), bars=section.bars, index=index)

	def volume_offset (self, bar: int, track: str) -> float:

		"""dB offset for ``track`` in the section containing ``bar``; 0 when absent."""

		return float(self.adjustments.get(self.section_for_bar(bar), {}).get(track, 0.0))
