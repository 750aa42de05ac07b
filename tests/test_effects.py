import pytest

import basedrum.effects
import basedrum.song


def test_filter_is_exponential () -> None:

	"""0 maps to 20 Hz, 1 to 20 kHz and 0.5 to the geometric middle."""

	assert basedrum.effects.map_effect(basedrum.effects.EffectKind.FILTER, 0.0).value == pytest.approx(20.0)
	assert basedrum.effects.map_effect(basedrum.effects.EffectKind.FILTER, 1.0).value == pytest.approx(20000.0)
	assert basedrum.effects.map_effect("filter", 0.5).value == pytest.approx((20.0 * 20000.0) ** 0.5)


def test_amounts_are_clamped () -> None:

	"""Out-of-range and NaN amounts are clamped before mapping."""

	assert basedrum.effects.map_effect("reverb", 3.0).value == 1.0
	assert basedrum.effects.map_effect("reverb", -1.0).value == 0.0
	assert basedrum.effects.map_effect("reverb", float("nan")).value == 0.0


def test_every_kind_has_a_mapping () -> None:

	"""Dispatch is total over the enum."""

	for kind in basedrum.effects.EffectKind:
		parameter = basedrum.effects.map_effect(kind, 0.5)
		assert parameter.name
		assert parameter.unit


def test_wire_names () -> None:

	"""Track effect tables use camelCase names."""

	mapped = basedrum.effects.map_effects({"lowEnd": 1.0, "resonance": 0.0})

	assert mapped["lowEnd"].value == pytest.approx(12.0)
	assert mapped["resonance"].value == pytest.approx(0.5)


def test_unknown_effect_raises () -> None:

	"""An unknown name is a ValueError."""

	with pytest.raises(ValueError):
		basedrum.effects.map_effect("flanger", 0.5)


def test_document_parameters () -> None:

	"""The master filter sweeps between start and end frequency."""

	metadata = basedrum.song.make_metadata("FX", 120, created="2024-01-01T00:00:00Z")
	document = basedrum.song.validate_song({
		"metadata": metadata.model_dump(mode="json"),
		"effects": {
			"filter": {"cutoff": 1.0, "type": "lowpass", "startFreq": 100, "endFreq": 5000},
			"reverb": {"wet": 0.3, "roomSize": 0.5, "decay": 4},
		},
		"tracks": {"kick": {"pattern": [0], "muted": False, "volume": 0.0}},
	})

	parameters = basedrum.effects.document_effect_parameters(document)

	assert parameters["filter_frequency"].value == pytest.approx(5000.0)
	assert parameters["reverb_wet"].value == 0.3
	assert parameters["reverb_room_size"].value == 0.5
	assert parameters["reverb_decay"].value == 4.0
