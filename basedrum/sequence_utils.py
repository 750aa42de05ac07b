import math
import typing


def sequence_to_indices (sequence: typing.Sequence[typing.Any]) -> typing.List[int]:

	"""Extract step indices where hits occur in a boolean/binary sequence."""

	return [i for i, v in enumerate(sequence) if v]


def indices_to_sequence (indices: typing.Iterable[int], length: int) -> typing.List[bool]:

	"""Expand step indices into a boolean sequence, ignoring indices outside ``length``."""

	sequence = [False] * length

	for i in indices:
		if 0 <= i < length:
			sequence[i] = True

	return sequence


def scale_clamp (value: float, in_min: float, in_max: float, out_min: float = 0.0, out_max: float = 1.0) -> float:

	"""Scale a value from an input range to an output range and clamp the result.

	Maps a value from [in_min, in_max] to [out_min, out_max]. If the result
	falls outside the output range, it is clamped to the nearest bound.
	Correctly handles reversed ranges (where min > max).

	Example:
		```python
		# Normalised filter amount (0-1) to a resonance Q (0.5-20)
		q = basedrum.sequence_utils.scale_clamp(amount, 0, 1, 0.5, 20.0)
		```
	"""

	if in_min == in_max:

		raise ValueError(f"Input range cannot be zero-width ({in_min} == {in_max})")

	percentage = (value - in_min) / (in_max - in_min)
	scaled = out_min + percentage * (out_max - out_min)

	# Handle regular and reversed ranges
	if out_min < out_max:
		return max(out_min, min(out_max, scaled))
	else:
		return max(out_max, min(out_min, scaled))


def db_to_gain (db: float) -> float:

	"""Convert decibels to a linear amplitude factor (0 dB -> 1.0)."""

	return 10.0 ** (db / 20.0)


def gain_to_db (gain: float) -> float:

	"""Convert a linear amplitude factor to decibels.  Silence maps to -inf."""

	if gain <= 0:
		return -math.inf

	return 20.0 * math.log10(gain)
