"""Normalised effect amounts mapped to concrete parameters.

Generated tracks carry effect amounts in [0, 1] (``{"filter": 0.7}``).  Each
:class:`EffectKind` declares how such an amount becomes a concrete
parameter for a voice.  Dispatch is by the enum tag, looked up in
:data:`EFFECT_MAPPINGS`.
"""

import dataclasses
import enum
import math
import typing

import basedrum.constants
import basedrum.sequence_utils
import basedrum.song


class EffectKind (enum.Enum):

	FILTER = "filter"
	REVERB = "reverb"
	LOW_END = "lowEnd"
	RUMBLE = "rumble"
	RESONANCE = "resonance"


@dataclasses.dataclass(frozen=True)
class EffectParameter:

	"""A concrete parameter: its name, unit and value."""

	name: str
	unit: str
	value: float


@dataclasses.dataclass(frozen=True)
class EffectMapping:

	parameter: str
	unit: str
	convert: typing.Callable[[float], float]


def _exponential_frequency (amount: float) -> float:

	"""0 -> 20 Hz, 1 -> 20 kHz, evenly spaced in octaves."""

	low = basedrum.constants.FREQ_MIN
	high = basedrum.constants.FREQ_MAX

	return low * math.pow(high / low, amount)


EFFECT_MAPPINGS: typing.Dict[EffectKind, EffectMapping] = {
	EffectKind.FILTER: EffectMapping("cutoff_frequency", "Hz", _exponential_frequency),
	EffectKind.REVERB: EffectMapping("wet", "ratio", lambda amount: amount),
	EffectKind.LOW_END: EffectMapping("low_shelf_gain", "dB", lambda amount: basedrum.sequence_utils.scale_clamp(amount, 0.0, 1.0, 0.0, 12.0)),
	EffectKind.RUMBLE: EffectMapping("rumble_send", "ratio", lambda amount: amount * 0.5),
	EffectKind.RESONANCE: EffectMapping("q", "Q", lambda amount: basedrum.sequence_utils.scale_clamp(amount, 0.0, 1.0, 0.5, 20.0)),
}


def clamp_amount (amount: float) -> float:

	if math.isnan(amount):
		return 0.0

	return max(0.0, min(1.0, amount))


def map_effect (kind: typing.Union[EffectKind, str], amount: float) -> EffectParameter:

	"""
	Convert a normalised amount to a concrete parameter.

	``kind`` may be the enum or its wire name (``"lowEnd"``).  The amount is
	clamped into [0, 1] first.

	Raises:
		ValueError: For an unknown effect name.
	"""

	kind = EffectKind(kind)
	mapping = EFFECT_MAPPINGS[kind]

	return EffectParameter(mapping.parameter, mapping.unit, mapping.convert(clamp_amount(amount)))


def map_effects (amounts: typing.Mapping[str, float]) -> typing.Dict[str, EffectParameter]:

	"""Map a track's ``{effect name: amount}`` table."""

	return {name: map_effect(name, amount) for name, amount in amounts.items()}


def document_effect_parameters (document: basedrum.song.SongDocument) -> typing.Dict[str, EffectParameter]:

	"""
	Concrete master-bus parameters for a document.

	The filter sweeps from ``startFreq`` towards ``endFreq`` as cutoff goes
	from 0 to 1 (geometric interpolation); the reverb values pass through.
	"""

	effects = document.effects
	start = effects.filter.start_freq
	end = effects.filter.end_freq
	cutoff = start * math.pow(end / start, clamp_amount(effects.filter.cutoff))

	return {
		"filter_frequency": EffectParameter("filter_frequency", "Hz", cutoff),
		"reverb_wet": EffectParameter("reverb_wet", "ratio", effects.reverb.wet),
		"reverb_room_size": EffectParameter("reverb_room_size", "ratio", effects.reverb.room_size),
		"reverb_decay": EffectParameter("reverb_decay", "s", effects.reverb.decay),
	}
