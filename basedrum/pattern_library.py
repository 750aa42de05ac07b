"""Hand-authored base rhythms and variation weights.

These are tuning tables rather than logic.  The generator picks one template
per musical role and perturbs it with :data:`VARIATION_WEIGHTS`; changing a
row here changes the output without touching any algorithm.
"""

import dataclasses
import typing

import basedrum.constants
import basedrum.sequence_utils


ROLES: typing.Tuple[str, ...] = ("foundation", "rhythm", "harmony", "texture", "lead")


def _template (*hits: int) -> typing.List[bool]:

	return basedrum.sequence_utils.indices_to_sequence(hits, basedrum.constants.STEPS_PER_BAR)


TEMPLATES: typing.Dict[str, typing.Dict[str, typing.List[bool]]] = {
	"foundation": {
		"fourOnFloor": _template(0, 4, 8, 12),
		"offbeat": _template(4, 12),
		"broken": _template(0, 3, 8),
		"syncopated": _template(0, 6, 8),
	},
	"rhythm": {
		"steady": _template(2, 6, 10, 14),
		"rolling": _template(0, 2, 4, 6, 8, 10, 12, 14),
		"syncopated": _template(2, 5, 10, 13),
		"sparse": _template(4, 12),
	},
	"harmony": {
		"root": _template(0, 3, 8, 11),
		"walking": _template(0, 5, 8, 13),
		"pulsing": _template(0, 2, 8, 10),
		"minimal": _template(0),
	},
	"lead": {
		"sparse": _template(0, 12),
		"call": _template(0, 8, 9),
		"response": _template(4, 12, 14),
		"minimal": _template(8),
	},
	"texture": {
		"backbeat": _template(4, 12),
		"shuffle": _template(4, 7, 12),
		"ghost": _template(1, 7, 15),
		"accent": _template(4, 10, 12),
	},
}


@dataclasses.dataclass(frozen=True)
class VariationWeights:

	"""Per-slot probabilities of adding a hit to an empty slot or removing one from a filled slot."""

	add: float
	remove: float


VARIATION_WEIGHTS: typing.Dict[str, VariationWeights] = {
	"conservative": VariationWeights(add=0.10, remove=0.10),
	"moderate": VariationWeights(add=0.20, remove=0.20),
	"adventurous": VariationWeights(add=0.30, remove=0.25),
}

# Upper bound of the complexity factor for each band, checked in order
WEIGHT_BANDS: typing.List[typing.Tuple[float, str]] = [
	(0.4, "conservative"),
	(0.7, "moderate"),
]


def select_weights (complexity_factor: float) -> VariationWeights:

	"""
	Pick the variation band for a complexity factor.

	``<= 0.4`` is conservative, ``<= 0.7`` moderate and anything above
	adventurous.
	"""

	for upper, name in WEIGHT_BANDS:
		if complexity_factor <= upper:
			return VARIATION_WEIGHTS[name]

	return VARIATION_WEIGHTS["adventurous"]


def get_template (role: str, name: str) -> typing.List[bool]:

	"""
	Return a copy of a named template.

	Raises:
		ValueError: If the role or template name is unknown.
	"""

	if role not in TEMPLATES:
		raise ValueError(f"Unknown role {role!r}. Available: {sorted(TEMPLATES)}")

	if name not in TEMPLATES[role]:
		raise ValueError(f"Unknown {role} template {name!r}. Available: {sorted(TEMPLATES[role])}")

	return list(TEMPLATES[role][name])
