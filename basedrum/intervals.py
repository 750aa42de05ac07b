"""Scales, pitch names and note-name parsing.

Note names follow ``<Pitch><Octave>`` with C4 = 60 (Middle C), e.g. ``"C2"``,
``"F#3"``, ``"Eb4"``.  Generated documents store pitches as these names and
voices convert them to MIDI numbers at trigger time.
"""

import re
import typing


INTERVAL_DEFINITIONS: typing.Dict[str, typing.List[int]] = {
	"chromatic": [0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10, 11],
	"dorian_mode": [0, 2, 3, 5, 7, 9, 10],
	"major_ionian": [0, 2, 4, 5, 7, 9, 11],
	"major_pentatonic": [0, 2, 4, 7, 9],
	"minor_pentatonic": [0, 3, 5, 7, 10],
	"mixolydian": [0, 2, 4, 5, 7, 9, 10],
	"natural_minor": [0, 2, 3, 5, 7, 8, 10],
}


# Constraint mode -> interval set
MODE_SCALES: typing.Dict[str, str] = {
	"major": "major_ionian",
	"minor": "natural_minor",
	"dorian": "dorian_mode",
	"mixolydian": "mixolydian",
}


NOTE_NAME_TO_PC: typing.Dict[str, int] = {
	"C": 0,
	"C#": 1,
	"Db": 1,
	"D": 2,
	"D#": 3,
	"Eb": 3,
	"E": 4,
	"F": 5,
	"F#": 6,
	"Gb": 6,
	"G": 7,
	"G#": 8,
	"Ab": 8,
	"A": 9,
	"A#": 10,
	"Bb": 10,
	"B": 11,
}

PC_TO_NOTE_NAME: typing.List[str] = [
	"C",
	"C#",
	"D",
	"D#",
	"E",
	"F",
	"F#",
	"G",
	"G#",
	"A",
	"A#",
	"B",
]


_NOTE_PATTERN = re.compile(r"^([A-Ga-g])([#b]?)(-?\d+)$")


def key_name_to_pc (key_name: str) -> int:

	"""Validate a key name and return its pitch class (0-11).

	Raises:
		ValueError: If the key name is not recognised.

	Example:
		```python
		key_name_to_pc("F#")  # -> 6
		key_name_to_pc("Bb")  # -> 10
		```
	"""

	if key_name not in NOTE_NAME_TO_PC:
		raise ValueError(
			f"Unknown key name: {key_name!r}. Expected e.g. 'C', 'F#', 'Bb'."
		)

	return NOTE_NAME_TO_PC[key_name]


def get_intervals (name: str) -> typing.List[int]:

	"""
	Return a named interval list from the registry.
	"""

	if name not in INTERVAL_DEFINITIONS:
		raise ValueError(f"Unknown interval set: {name}")

	return list(INTERVAL_DEFINITIONS[name])


def scale_pitch_classes (key_pc: int, mode: str = "major") -> typing.List[int]:

	"""
	Return the pitch classes (0-11) that belong to a key and mode.

	Parameters:
		key_pc: Root pitch class (0 = C, 1 = C#/Db, ..., 11 = B).
		mode: One of ``MODE_SCALES`` (major, minor, dorian, mixolydian).

	Example:
		```python
		scale_pitch_classes(9, "minor")  # -> [9, 11, 0, 2, 4, 5, 7]
		```
	"""

	if mode not in MODE_SCALES:
		raise ValueError(f"Unknown mode '{mode}'. Available: {sorted(MODE_SCALES)}")

	return [(key_pc + i) % 12 for i in get_intervals(MODE_SCALES[mode])]


def scale_note_names (key: str, mode: str, octave: int) -> typing.List[str]:

	"""
	Spell one octave of a scale as note names, ascending from the root.

	Degrees that pass B roll into the next octave, so ``A minor`` at octave 2
	gives ``A2 B2 C3 D3 E3 F3 G3``.
	"""

	root_pc = key_name_to_pc(key)
	names: typing.List[str] = []

	for interval in get_intervals(MODE_SCALES[mode] if mode in MODE_SCALES else mode):
		absolute = root_pc + interval
		names.append(f"{PC_TO_NOTE_NAME[absolute % 12]}{octave + absolute // 12}")

	return names


def note_to_midi (name: str) -> int:

	"""
	Convert a note name such as ``"Eb2"`` or ``"F#4"`` to a MIDI note number.

	Raises:
		ValueError: If the name cannot be parsed or falls outside 0-127.

	Example:
		```python
		note_to_midi("C4")   # -> 60
		note_to_midi("Eb2")  # -> 39
		```
	"""

	match = _NOTE_PATTERN.match(name.strip())

	if match is None:
		raise ValueError(f"Invalid note name: {name!r}")

	letter, accidental, octave = match.groups()
	pc = NOTE_NAME_TO_PC[letter.upper() + accidental]
	midi = (int(octave) + 1) * 12 + pc

	if not 0 <= midi <= 127:
		raise ValueError(f"Note {name!r} is outside the MIDI range")

	return midi


def midi_to_note (pitch: int) -> str:

	"""Spell a MIDI note number with sharps, e.g. ``61 -> "C#4"``."""

	return f"{PC_TO_NOTE_NAME[pitch % 12]}{pitch // 12 - 1}"
