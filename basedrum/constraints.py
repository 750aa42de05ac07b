"""Derive musical constraints from a user data snapshot.

Every ratio is capped and clamped so that outliers (a wallet with ten million
transactions, a negative count from a broken feed) still land inside the
musical ranges.  The function is pure: the same snapshot always yields the
same constraints.
"""

import dataclasses
import typing

import basedrum.constants
import basedrum.user_data


PITCH_CLASSES: typing.Tuple[str, ...] = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

MODES: typing.Tuple[str, ...] = ("major", "minor", "dorian", "mixolydian")


@dataclasses.dataclass(frozen=True)
class MusicalConstraints:

	"""
	Global musical parameters that every generator reads.

	Attributes:
		tempo: Beats per minute (60-200).
		key: Pitch class name, e.g. ``"F#"``.
		mode: One of ``MODES``.
		density: How busy the rhythm section is (0.0-1.0).
		energy: Drive and loudness (0.0-1.0).
		complexity: Syncopation and variation (0.0-1.0).
	"""

	tempo: int = basedrum.constants.DEFAULT_TEMPO
	key: str = basedrum.constants.DEFAULT_KEY
	mode: str = basedrum.constants.DEFAULT_MODE
	density: float = basedrum.constants.DEFAULT_DENSITY
	energy: float = basedrum.constants.DEFAULT_ENERGY
	complexity: float = basedrum.constants.DEFAULT_COMPLEXITY

	def __post_init__ (self) -> None:

		if self.key not in PITCH_CLASSES:
			raise ValueError(f"Unknown key {self.key!r}")

		if self.mode not in MODES:
			raise ValueError(f"Unknown mode {self.mode!r}")

		if not basedrum.constants.BPM_MIN <= self.tempo <= basedrum.constants.BPM_MAX:
			raise ValueError(f"Tempo {self.tempo} outside {basedrum.constants.BPM_MIN}-{basedrum.constants.BPM_MAX}")

		for name in ("density", "energy", "complexity"):
			value = getattr(self, name)
			if not 0.0 <= value <= 1.0:
				raise ValueError(f"{name} must be in [0, 1], got {value}")


def hash_string (text: str) -> int:

	"""
	31-multiplier string hash, wrapped to a signed 32-bit integer, returned as
	its absolute value.

	Equal strings always hash equal, on every platform and interpreter run
	(unlike the built-in ``hash``, which is salted per process).
	"""

	value = 0

	for char in text:
		value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF

	if value >= 0x80000000:
		value -= 0x100000000

	return abs(value)


def _ratio (value: float, cap: float) -> float:

	"""``value / cap`` with ``value`` clamped into [0, cap] and NaN treated as 0."""

	# Compared before any float conversion so arbitrarily large ints saturate
	if value >= cap:
		return 1.0

	if value > 0:
		return value / cap

	return 0.0


def _clamp_unit (value: float) -> float:

	return max(0.0, min(1.0, value))


def extract_constraints (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> MusicalConstraints:

	"""
	Map a user snapshot to tempo, key, mode, density, energy and complexity.

	With no snapshot the defaults are returned (140 BPM, C minor, 0.6/0.7/0.5).

	Parameters:
		user_data: The snapshot to read, or ``None``.

	Example:
		```python
		c = basedrum.constraints.extract_constraints(user)
		c.tempo, c.key, c.mode
		```
	"""

	if user_data is None:
		return MusicalConstraints()

	onchain = user_data.onchain
	farcaster = user_data.farcaster
	consts = basedrum.constants

	activity = farcaster.follower_count + farcaster.following_count + onchain.transaction_count
	tempo = round(consts.TEMPO_BASE + consts.TEMPO_SPAN * _ratio(activity, consts.TEMPO_ACTIVITY_CAP))
	tempo = max(consts.BPM_MIN, min(consts.BPM_MAX, tempo))

	density = max(consts.DENSITY_FLOOR, _ratio(onchain.transaction_count, consts.DENSITY_TX_CAP))

	wealth = (_ratio(user_data.wallet.balance, consts.ENERGY_BALANCE_CAP) + _ratio(onchain.token_count, consts.ENERGY_TOKEN_CAP)) / 2
	energy = max(consts.ENERGY_FLOOR, _clamp_unit(wealth))

	diversity = _ratio(onchain.token_count, consts.COMPLEXITY_TOKEN_CAP) + _ratio(onchain.nft_count, consts.COMPLEXITY_NFT_CAP)
	complexity = max(consts.COMPLEXITY_FLOOR, _clamp_unit(diversity))

	key = PITCH_CLASSES[hash_string(user_data.address or "default") % len(PITCH_CLASSES)]
	mode = "major" if farcaster.follower_count > farcaster.following_count else "minor"

	return MusicalConstraints(
		tempo = int(tempo),
		key = key,
		mode = mode,
		density = _clamp_unit(density),
		energy = _clamp_unit(energy),
		complexity = _clamp_unit(complexity)
	)
