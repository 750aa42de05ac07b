import unittest

import basedrum.intervals


class IntervalTests (unittest.TestCase):

	"""
	Tests for scale lookup and note-name conversion.
	"""

	def test_get_intervals (self) -> None:

		"""
		Interval lookup should return a known definition.
		"""

		self.assertEqual(basedrum.intervals.get_intervals("minor_pentatonic"), [0, 3, 5, 7, 10])


	def test_get_intervals_unknown (self) -> None:

		"""
		Unknown interval sets should raise.
		"""

		with self.assertRaises(ValueError):
			basedrum.intervals.get_intervals("lydian_dominant")


	def test_scale_pitch_classes (self) -> None:

		"""
		A minor starts on A and wraps round through C.
		"""

		self.assertEqual(basedrum.intervals.scale_pitch_classes(9, "minor"), [9, 11, 0, 2, 4, 5, 7])


	def test_scale_note_names_roll_into_next_octave (self) -> None:

		"""
		Degrees past B move up an octave.
		"""

		self.assertEqual(
			basedrum.intervals.scale_note_names("A", "minor", 2),
			["A2", "B2", "C3", "D3", "E3", "F3", "G3"]
		)


	def test_scale_note_names_for_c_major (self) -> None:

		"""
		C major stays inside one octave.
		"""

		self.assertEqual(
			basedrum.intervals.scale_note_names("C", "major", 3),
			["C3", "D3", "E3", "F3", "G3", "A3", "B3"]
		)


	def test_note_to_midi (self) -> None:

		"""
		Middle C is 60; flats and sharps resolve to the same pitch.
		"""

		self.assertEqual(basedrum.intervals.note_to_midi("C4"), 60)
		self.assertEqual(basedrum.intervals.note_to_midi("Eb2"), 39)
		self.assertEqual(basedrum.intervals.note_to_midi("D#2"), 39)
		self.assertEqual(basedrum.intervals.note_to_midi("C-1"), 0)


	def test_note_to_midi_invalid (self) -> None:

		"""
		Bad names and out-of-range octaves raise.
		"""

		for name in ("H2", "C", "Cb#3", "G10"):
			with self.assertRaises(ValueError):
				basedrum.intervals.note_to_midi(name)


	def test_midi_to_note (self) -> None:

		"""
		Numbers are spelled with sharps.
		"""

		self.assertEqual(basedrum.intervals.midi_to_note(61), "C#4")
		self.assertEqual(basedrum.intervals.note_to_midi(basedrum.intervals.midi_to_note(39)), 39)


	def test_key_name_to_pc (self) -> None:

		"""
		Key names map to pitch classes.
		"""

		self.assertEqual(basedrum.intervals.key_name_to_pc("F#"), 6)

		with self.assertRaises(ValueError):
			basedrum.intervals.key_name_to_pc("X")


if __name__ == "__main__":
	unittest.main()
