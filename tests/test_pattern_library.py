import pytest

import basedrum.pattern_library


def test_every_template_is_one_bar () -> None:

	"""All templates are 16 boolean steps."""

	for role, templates in basedrum.pattern_library.TEMPLATES.items():
		for name, template in templates.items():
			assert len(template) == 16, f"{role}.{name}"
			assert all(isinstance(slot, bool) for slot in template)


def test_every_role_has_templates () -> None:

	"""Each musical role has a catalogue."""

	assert set(basedrum.pattern_library.TEMPLATES) == set(basedrum.pattern_library.ROLES)


def test_get_template_returns_a_copy () -> None:

	"""Mutating a fetched template leaves the library untouched."""

	template = basedrum.pattern_library.get_template("foundation", "fourOnFloor")
	template[1] = True

	assert basedrum.pattern_library.TEMPLATES["foundation"]["fourOnFloor"][1] is False


def test_get_template_unknown_names () -> None:

	"""Unknown roles and names raise ValueError."""

	with pytest.raises(ValueError, match="role"):
		basedrum.pattern_library.get_template("percussion", "fourOnFloor")

	with pytest.raises(ValueError, match="template"):
		basedrum.pattern_library.get_template("foundation", "polka")


@pytest.mark.parametrize("factor, band", [
	(0.0, "conservative"),
	(0.4, "conservative"),
	(0.41, "moderate"),
	(0.7, "moderate"),
	(0.71, "adventurous"),
	(1.0, "adventurous"),
])
def test_select_weights_bands (factor: float, band: str) -> None:

	"""Band boundaries are inclusive on the upper side."""

	assert basedrum.pattern_library.select_weights(factor) == basedrum.pattern_library.VARIATION_WEIGHTS[band]


def test_weights_values () -> None:

	"""The three bands carry their add/remove probabilities."""

	weights = basedrum.pattern_library.VARIATION_WEIGHTS

	assert (weights["conservative"].add, weights["conservative"].remove) == (0.10, 0.10)
	assert (weights["moderate"].add, weights["moderate"].remove) == (0.20, 0.20)
	assert (weights["adventurous"].add, weights["adventurous"].remove) == (0.30, 0.25)
