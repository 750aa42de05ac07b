import pytest

import basedrum.threshold_patterns
import basedrum.user_data


def test_all_a_address_with_no_activity (empty_user: basedrum.user_data.UserDataVector) -> None:

	"""No transactions and no followers give four-on-the-floor and claps on 2 and 4."""

	document = basedrum.threshold_patterns.build_onboarding_song(empty_user)

	assert list(document.tracks["kick"].pattern) == [0, 4, 8, 12]
	assert list(document.tracks["clap"].pattern) == [4, 12]


def test_onboarding_song_is_deterministic (empty_user: basedrum.user_data.UserDataVector) -> None:

	"""The same user always gets the same onboarding patterns."""

	a = basedrum.threshold_patterns.build_onboarding_song(empty_user, created="2024-01-01T00:00:00Z")
	b = basedrum.threshold_patterns.build_onboarding_song(empty_user, created="2024-01-01T00:00:00Z")

	assert a == b


@pytest.mark.parametrize("pattern_fn, values", [
	(basedrum.threshold_patterns.kick_pattern, (0, 30, 150)),
	(basedrum.threshold_patterns.clap_pattern, (0, 30, 150, 500)),
	(basedrum.threshold_patterns.bass_pattern, (0, 8, 15, 50)),
])
def test_busier_bands_only_add_steps (pattern_fn, values) -> None:

	"""Each band is a superset of the one before it, compared by value."""

	sets = [set(pattern_fn(v)) for v in values]

	for smaller, larger in zip(sets, sets[1:]):
		assert smaller < larger


def test_monotonic_over_every_count () -> None:

	"""Stepping the transaction count one at a time never drops a step."""

	previous: set[int] = set()

	for tx in range(0, 300):
		current = set(basedrum.threshold_patterns.kick_pattern(tx))
		assert previous <= current
		previous = current


def test_kick_bands () -> None:

	"""Band edges are inclusive."""

	assert basedrum.threshold_patterns.kick_pattern(0) == [0, 4, 8, 12]
	assert basedrum.threshold_patterns.kick_pattern(25) == [0, 3, 4, 8, 12]
	assert basedrum.threshold_patterns.kick_pattern(26) == [0, 2, 3, 4, 8, 10, 12]
	assert basedrum.threshold_patterns.kick_pattern(101) == [0, 1, 2, 3, 4, 6, 8, 9, 10, 12, 14]


def test_negative_input_clamps_to_first_band () -> None:

	"""A negative count is read as zero."""

	assert basedrum.threshold_patterns.kick_pattern(-5) == basedrum.threshold_patterns.kick_pattern(0)
	assert basedrum.threshold_patterns.clap_pattern(-1) == [4, 12]


def test_messages_quote_the_value () -> None:

	"""Band messages name the count that selected them."""

	user = basedrum.user_data.UserDataVector.from_dict({
		"onchain": {"transactionCount": 30, "tokenCount": 12},
		"farcaster": {"followerCount": 120},
	})

	assert "30 transactions" in basedrum.threshold_patterns.kick_message(user)
	assert "120 followers" in basedrum.threshold_patterns.clap_message(user)
	assert "12 diverse tokens" in basedrum.threshold_patterns.bass_message(user)
	assert "4/4" in basedrum.threshold_patterns.kick_message(None)


def test_wallet_melody_maps_hex_digits () -> None:

	"""Digits 2..17 become notes, D/E/F become rests."""

	melody = basedrum.threshold_patterns.wallet_melody("0x0aD9" + "0" * 36)

	assert melody[:3] == [(0, "C2"), (1, "C4"), (3, "Bb3")]
	assert all(step != 2 for step, _ in melody)
	assert len(melody) == 15


def test_wallet_melody_rejects_short_or_missing_addresses () -> None:

	"""Nothing usable gives an empty melody."""

	assert basedrum.threshold_patterns.wallet_melody(None) == []
	assert basedrum.threshold_patterns.wallet_melody("0x123") == []


def test_onboarding_song_layout (scenario_user: basedrum.user_data.UserDataVector) -> None:

	"""Kick, clap, bass and acid at 128 BPM with fixed levels and C1 bass roots."""

	document = basedrum.threshold_patterns.build_onboarding_song(scenario_user)

	assert document.metadata.bpm == 128
	assert set(document.tracks) == {"kick", "clap", "bass", "acid"}
	assert document.tracks["kick"].volume == -6.0
	assert document.tracks["clap"].volume == -10.0
	assert set(document.tracks["bass"].notes or ()) == {"C1"}
	assert list(document.tracks["bass"].pattern) == basedrum.threshold_patterns.bass_pattern(12)

	acid = document.tracks["acid"]
	assert acid.notes is not None
	assert len(acid.notes) == len(acid.pattern)


def test_onboarding_without_address_has_no_acid () -> None:

	"""No wallet, no acid line."""

	document = basedrum.threshold_patterns.build_onboarding_song(None)

	assert "acid" not in document.tracks
	assert list(document.tracks["kick"].pattern) == [0, 4, 8, 12]
