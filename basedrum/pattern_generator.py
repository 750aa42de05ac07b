"""Stochastic, seeded pattern generation.

For each musical role a base template is chosen from
:mod:`basedrum.pattern_library` by tiered constraint thresholds, then
perturbed by :func:`apply_variation` with a role-specific
:class:`~basedrum.seeded_random.SeededRandom`.  Roles are generated in a
fixed priority order and sparser identities get fewer instruments:

====================  ==============  ==================
Role                  Track           Present when
====================  ==============  ==================
foundation            kick            always
rhythm                hihat           density > 0.3
harmony               bass            energy > 0.4
texture               snare           complexity > 0.5
lead                  lead            density > 0.7
====================  ==============  ==================

Every track carries a ``reason`` naming the data that shaped it.
"""

import dataclasses
import logging
import typing

import basedrum.constants
import basedrum.constants.velocity
import basedrum.constraints
import basedrum.effects
import basedrum.intervals
import basedrum.pattern_library
import basedrum.seeded_random
import basedrum.sequence_utils
import basedrum.song
import basedrum.user_data


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class GeneratedTrack:

	"""
	One generated instrument.

	Attributes:
		id: Track name used in the song document (``"kick"``, ``"hihat"``, ...).
		name: Display name.
		pattern: 16 booleans, one per step.
		preset_id: Voice preset hint for the sound layer.
		volume: Normalised level (0-1).
		effects: Named effect amounts, each in [0, 1].
		reason: Human-readable link back to the data that shaped the track.
		musical_role: foundation / rhythm / harmony / texture / lead.
		notes: Pitch names, one per hit, for melodic roles.
		template: Name of the base template the pattern grew from.
	"""

	id: str
	name: str
	pattern: typing.List[bool]
	preset_id: str
	volume: float
	effects: typing.Dict[str, float]
	reason: str
	musical_role: str
	notes: typing.Optional[typing.List[str]] = None
	template: str = ""

	@property
	def hits (self) -> typing.List[int]:
		return basedrum.sequence_utils.sequence_to_indices(self.pattern)


# (threshold, template) pairs checked in order; the last entry is the fallback
Tiers = typing.List[typing.Tuple[float, str]]

FOUNDATION_TIERS: Tiers = [(0.8, "fourOnFloor"), (0.6, "broken"), (0.4, "syncopated"), (-1.0, "offbeat")]
RHYTHM_TIERS: Tiers = [(0.7, "rolling"), (0.5, "syncopated"), (0.3, "steady"), (-1.0, "sparse")]
HARMONY_TIERS: Tiers = [(0.8, "walking"), (0.6, "pulsing"), (0.4, "root"), (-1.0, "minimal")]
TEXTURE_TIERS: Tiers = [(0.8, "shuffle"), (0.6, "accent"), (0.4, "backbeat"), (-1.0, "ghost")]
LEAD_TIERS: Tiers = [(0.9, "call"), (0.8, "response"), (0.7, "sparse"), (-1.0, "minimal")]

# Fraction of the complexity constraint handed to apply_variation, per role
VARIATION_FACTORS: typing.Dict[str, float] = {
	"foundation": 1.0,
	"rhythm": 0.7,
	"harmony": 0.6,
	"texture": 0.5,
	"lead": 0.4,
}

# Offset added to the user seed so each role has its own stream
SEED_OFFSETS: typing.Dict[str, int] = {
	"foundation": 0,
	"rhythm": 1,
	"harmony": 2,
	"texture": 3,
	"lead": 4,
}

MELODIC_OCTAVES: typing.Dict[str, int] = {
	"harmony": 2,
	"lead": 4,
}


def _select_template (value: float, tiers: Tiers) -> str:

	for threshold, name in tiers:
		if value > threshold:
			return name

	return tiers[-1][1]


def apply_variation (
	base: typing.Sequence[bool],
	complexity_factor: float,
	rng: basedrum.seeded_random.SeededRandom
) -> typing.List[bool]:

	"""
	Perturb a template without touching its downbeats.

	Every slot whose index is not a multiple of 4 takes exactly one draw, in
	index order: an empty slot becomes a hit with probability ``add`` and a
	filled slot is cleared with probability ``remove`` (see
	:func:`basedrum.pattern_library.select_weights`).  Downbeat slots are copied
	through unchanged and consume no draws.  ``base`` is not modified.
	"""

	weights = basedrum.pattern_library.select_weights(complexity_factor)
	pattern = list(base)

	for i, hit in enumerate(pattern):

		if i % basedrum.constants.STEPS_PER_BEAT == 0:
			continue

		draw = rng.random()

		if not hit and draw < weights.add:
			pattern[i] = True

		elif hit and draw < weights.remove:
			pattern[i] = False

	return pattern


def _melodic_notes (
	pattern: typing.Sequence[bool],
	constraints: basedrum.constraints.MusicalConstraints,
	octave: int,
	rng: basedrum.seeded_random.SeededRandom
) -> typing.List[str]:

	"""One scale note per hit; a hit on the first step always plays the root."""

	scale = basedrum.intervals.scale_note_names(constraints.key, constraints.mode, octave)
	notes: typing.List[str] = []

	for i, hit in enumerate(pattern):

		if not hit:
			continue

		notes.append(scale[0] if i == 0 else rng.choice(scale))

	return notes


def _counts (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> typing.Dict[str, typing.Any]:

	if user_data is None:
		user_data = basedrum.user_data.UserDataVector()

	return {
		"tx": user_data.onchain.transaction_count,
		"followers": user_data.farcaster.follower_count,
		"following": user_data.farcaster.following_count,
		"balance": user_data.wallet.balance,
		"tokens": user_data.onchain.token_count,
		"nfts": user_data.onchain.nft_count,
		"eth": user_data.prices.eth,
	}


def _clamped_effects (effects: typing.Dict[str, float]) -> typing.Dict[str, float]:

	return {name: basedrum.effects.clamp_amount(value) for name, value in effects.items()}


def _generate_role (
	role: str,
	value: float,
	tiers: Tiers,
	constraints: basedrum.constraints.MusicalConstraints,
	seed: int
) -> typing.Tuple[str, typing.List[bool], typing.Optional[typing.List[str]]]:

	rng = basedrum.seeded_random.SeededRandom(seed + SEED_OFFSETS[role])
	template = _select_template(value, tiers)
	base = basedrum.pattern_library.get_template(role, template)
	pattern = apply_variation(base, constraints.complexity * VARIATION_FACTORS[role], rng)

	notes = None

	if role in MELODIC_OCTAVES:
		notes = _melodic_notes(pattern, constraints, MELODIC_OCTAVES[role], rng)

	return template, pattern, notes


def generate_tracks (
	user_data: typing.Optional[basedrum.user_data.UserDataVector],
	constraints: typing.Optional[basedrum.constraints.MusicalConstraints] = None
) -> typing.List[GeneratedTrack]:

	"""
	Generate the track set for a user.

	The same ``user_data`` always yields equal output, reasons included.
	``None`` uses the default constraints and seed.

	Parameters:
		user_data: The user snapshot, or ``None``.
		constraints: Pre-computed constraints (derived from ``user_data`` when omitted).

	Example:
		```python
		tracks = basedrum.pattern_generator.generate_tracks(user)
		[t.id for t in tracks]  # ['kick', 'hihat', 'bass', 'snare']
		```
	"""

	if constraints is None:
		constraints = basedrum.constraints.extract_constraints(user_data)

	seed = basedrum.seeded_random.create_seed(user_data)
	counts = _counts(user_data)
	c = constraints

	logger.debug(f"Generating tracks with seed {seed} and constraints {c}")

	tracks: typing.List[GeneratedTrack] = []

	template, pattern, _ = _generate_role("foundation", c.energy, FOUNDATION_TIERS, c, seed)
	tracks.append(GeneratedTrack(
		id = "kick",
		name = "Foundation Kick",
		pattern = pattern,
		preset_id = "pulse-kick",
		volume = 0.8 + c.energy * 0.2,
		effects = {},
		reason = f"Your {counts['tx']} transactions lay down a {template} kick foundation",
		musical_role = "foundation",
		template = template
	))

	if c.density > 0.3:
		template, pattern, _ = _generate_role("rhythm", c.complexity, RHYTHM_TIERS, c, seed)
		tracks.append(GeneratedTrack(
			id = "hihat",
			name = "Rhythmic Hi-Hat",
			pattern = pattern,
			preset_id = "synco-hihat",
			volume = 0.5 + c.density * 0.3,
			effects = {},
			reason = f"Your {counts['followers']} followers and {counts['following']} following set a {template} hi-hat groove",
			musical_role = "rhythm",
			template = template
		))

	if c.energy > 0.4:
		template, pattern, notes = _generate_role("harmony", c.energy, HARMONY_TIERS, c, seed)
		tracks.append(GeneratedTrack(
			id = "bass",
			name = "Harmonic Bass",
			pattern = pattern,
			preset_id = "sub-bass",
			volume = 0.7 + c.energy * 0.2,
			effects = _clamped_effects({"lowEnd": 0.7 + c.energy * 0.3, "rumble": c.complexity * 0.4}),
			reason = f"Your {counts['balance']:g} ETH balance unlocks a {template} bassline in {c.key} {c.mode}",
			musical_role = "harmony",
			notes = notes,
			template = template
		))

	if c.complexity > 0.5:
		template, pattern, _ = _generate_role("texture", c.complexity, TEXTURE_TIERS, c, seed)
		tracks.append(GeneratedTrack(
			id = "snare",
			name = "Groove Snare",
			pattern = pattern,
			preset_id = "909-snare",
			volume = 0.6 + c.energy * 0.2,
			effects = {},
			reason = f"Your {counts['tokens']} tokens and {counts['nfts']} NFTs add a {template} snare texture",
			musical_role = "texture",
			template = template
		))

	if c.density > 0.7:
		template, pattern, notes = _generate_role("lead", c.density, LEAD_TIERS, c, seed)
		price = f" with ETH at ${counts['eth']:,.0f}" if counts["eth"] is not None else ""
		tracks.append(GeneratedTrack(
			id = "lead",
			name = "Melodic Lead",
			pattern = pattern,
			preset_id = "filter-lead",
			volume = 0.4 + c.density * 0.3,
			effects = _clamped_effects({"filter": 0.5 + c.complexity * 0.5, "resonance": c.energy * 0.6}),
			reason = f"Your {counts['nfts']} NFTs{price} shape a {template} lead line",
			musical_role = "lead",
			notes = notes,
			template = template
		))

	return tracks


def _track_data (track: GeneratedTrack) -> typing.Dict[str, typing.Any]:

	hits = track.hits
	level = basedrum.constants.velocity.GENERATED_VELOCITY.get(track.musical_role, basedrum.constants.velocity.DEFAULT_VELOCITY)
	velocity = [level if hit else 0.0 for hit in track.pattern]

	data: typing.Dict[str, typing.Any] = {
		"pattern": hits,
		"velocity": velocity,
		"muted": False,
		"volume": round(basedrum.sequence_utils.gain_to_db(track.volume), 2),
	}

	if track.notes:
		data["notes"] = list(track.notes)

	return data


def tracks_to_song (
	tracks: typing.Sequence[GeneratedTrack],
	constraints: basedrum.constraints.MusicalConstraints,
	title: str = "BaseDrum Loop",
	artist: str = "BaseDrum",
	created: typing.Optional[str] = None
) -> basedrum.song.SongDocument:

	"""
	Wrap generated tracks in a validated one-bar, 16-step document.

	Track volume is converted to dB (``20 * log10(volume)``) and every hit
	gets its role's default velocity.  The master filter cutoff follows the
	``energy`` constraint.
	"""

	metadata = basedrum.song.make_metadata(title, constraints.tempo, bars=1, artist=artist, created=created)

	data = {
		"metadata": metadata.model_dump(by_alias=True, mode="json"),
		"effects": {
			"filter": {"cutoff": constraints.energy, "type": "lowpass", "startFreq": basedrum.constants.FREQ_MAX, "endFreq": basedrum.constants.FREQ_MAX},
			"reverb": {"wet": 0.1, "roomSize": 0.7, "decay": 2.0},
		},
		"tracks": {track.id: _track_data(track) for track in tracks},
	}

	return basedrum.song.validate_song(data)


def generate_song (
	user_data: typing.Optional[basedrum.user_data.UserDataVector],
	title: typing.Optional[str] = None,
	created: typing.Optional[str] = None
) -> basedrum.song.SongDocument:

	"""Generate tracks for ``user_data`` and wrap them in a document."""

	constraints = basedrum.constraints.extract_constraints(user_data)
	tracks = generate_tracks(user_data, constraints)

	if title is None:
		title = f"BaseDrum in {constraints.key} {constraints.mode}"

	return tracks_to_song(tracks, constraints, title=title, created=created)
