"""Rule-based patterns for the onboarding flow.

A cheaper, non-stochastic alternative to :mod:`basedrum.pattern_generator`:
each instrument reads one number and looks it up in a small table of
inclusive bands.  The tables are cumulative, so crossing a band boundary only
ever adds hits::

	kick_pattern(0)    # [0, 4, 8, 12]
	kick_pattern(30)   # [0, 2, 3, 4, 8, 10, 12]
	kick_pattern(150)  # [0, 1, 2, 3, 4, 6, 8, 9, 10, 12, 14]

The acid line is spelled from the wallet address itself, one hex digit per
step.
"""

import dataclasses
import logging
import typing

import basedrum.constants
import basedrum.constants.velocity
import basedrum.song
import basedrum.user_data


logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Band:

	"""Steps added once the input exceeds the previous band's ``upper`` bound."""

	upper: typing.Optional[int]
	adds: typing.Tuple[int, ...]
	message: str


# Bands are checked in order; the input selects the first band whose ``upper``
# is >= the value (``None`` means unbounded) and every band up to it applies.

KICK_BANDS: typing.List[Band] = [
	Band(0, (0, 4, 8, 12), "Because you have no onchain transactions, you're keeping the standard 4/4 kick. Welcome to web3!"),
	Band(25, (3,), "Because you have made {value} transactions, you get an extra anticipation kick!"),
	Band(100, (2, 10), "Because you have made {value} transactions, you get an upgraded double-hit kick pattern!"),
	Band(None, (1, 6, 9, 14), "Because you have made {value} transactions, you get the most complex syncopated kick!"),
]

CLAP_BANDS: typing.List[Band] = [
	Band(0, (4, 12), "Because you have no followers yet, you're keeping the standard clap on beats 2 and 4"),
	Band(50, (14,), "Because you have {value} followers, you get an anticipation clap pattern!"),
	Band(200, (6,), "Because you have {value} followers, you get syncopated clap patterns!"),
	Band(None, (2,), "Because you have {value} followers, you get complex influencer-level rhythm claps!"),
]

BASS_BANDS: typing.List[Band] = [
	Band(5, (0, 2, 8, 10), "Because you hold {value} tokens, you're keeping the simple bass foundation"),
	Band(10, (4, 12), "Because you hold {value} tokens in your portfolio, you get more bass hits!"),
	Band(20, (1, 9), "Because you hold {value} diverse tokens, you get an upgraded syncopated bass line!"),
	Band(None, (6, 14), "Because you hold {value} tokens, you get the most complex DeFi native bass line!"),
]

# Hex digit -> note (C minor pentatonic ladder); D, E and F are rests
WALLET_NOTE_MAP: typing.Dict[str, typing.Optional[str]] = {
	"0": "C2", "1": "Eb2", "2": "F2", "3": "G2", "4": "Bb2",
	"5": "C3", "6": "Eb3", "7": "F3", "8": "G3", "9": "Bb3",
	"A": "C4", "B": "Eb4", "C": "F4",
	"D": None, "E": None, "F": None,
}

ONBOARDING_BPM = 128

ONBOARDING_VOLUMES: typing.Dict[str, float] = {
	"kick": -6.0,
	"clap": -10.0,
	"bass": -8.0,
	"acid": -10.0,
}

BASS_ROOT_NOTE = "C1"


def _band_index (value: int, bands: typing.Sequence[Band]) -> int:

	value = max(0, value)

	for index, band in enumerate(bands):
		if band.upper is None or value <= band.upper:
			return index

	return len(bands) - 1


def threshold_pattern (value: int, bands: typing.Sequence[Band]) -> typing.List[int]:

	"""
	Resolve a value against a cumulative band table.

	Negative values clamp to the first band.  The result is sorted.
	"""

	steps: typing.Set[int] = set()

	for band in bands[:_band_index(value, bands) + 1]:
		steps.update(band.adds)

	return sorted(steps)


def threshold_message (value: int, bands: typing.Sequence[Band]) -> str:

	return bands[_band_index(value, bands)].message.format(value=max(0, value))


def kick_pattern (transaction_count: int) -> typing.List[int]:

	return threshold_pattern(transaction_count, KICK_BANDS)


def clap_pattern (follower_count: int) -> typing.List[int]:

	return threshold_pattern(follower_count, CLAP_BANDS)


def bass_pattern (token_count: int) -> typing.List[int]:

	return threshold_pattern(token_count, BASS_BANDS)


def kick_message (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> str:

	if user_data is None:
		return "You're keeping the standard 4/4 kick pattern"

	return threshold_message(user_data.onchain.transaction_count, KICK_BANDS)


def clap_message (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> str:

	if user_data is None:
		return "You're keeping the standard clap on beats 2 and 4"

	return threshold_message(user_data.farcaster.follower_count, CLAP_BANDS)


def bass_message (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> str:

	if user_data is None:
		return "You're keeping the simple bass line"

	return threshold_message(user_data.onchain.token_count, BASS_BANDS)


def wallet_melody (address: typing.Optional[str]) -> typing.List[typing.Tuple[int, str]]:

	"""
	Spell a 16-step melody from hex digits 2..17 of a wallet address.

	Returns ``(step, note)`` pairs for the sounding steps only; rests and
	non-hex characters are skipped.  Addresses shorter than 10 characters
	give an empty melody.

	Example:
		```python
		wallet_melody("0x0A1D...")  # [(0, 'C2'), (1, 'C4'), (2, 'Eb2'), ...]
		```
	"""

	if not address or len(address) < 10:
		return []

	digits = address[2:2 + basedrum.constants.STEPS_PER_BAR].upper()
	melody: typing.List[typing.Tuple[int, str]] = []

	for step, digit in enumerate(digits):
		note = WALLET_NOTE_MAP.get(digit)
		if note is not None:
			melody.append((step, note))

	return melody


def melody_message (address: typing.Optional[str]) -> str:

	if not address:
		return "Your wallet creates a unique acid melody"

	short = f"{address[:6]}...{address[-4:]}"
	hex_section = address[2:2 + basedrum.constants.STEPS_PER_BAR]

	return (
		f"Because your wallet address is {short}, you get a completely unique acid melody! "
		f"Each hex character ({hex_section}) maps to notes in a minor scale, with D/E/F creating musical rests."
	)


def _velocity_lane (pattern: typing.Sequence[int], level: float) -> typing.List[float]:

	hits = set(pattern)

	return [level if step in hits else 0.0 for step in range(basedrum.constants.STEPS_PER_BAR)]


def _track (name: str, pattern: typing.Sequence[int], notes: typing.Optional[typing.Sequence[str]] = None) -> typing.Dict[str, typing.Any]:

	track: typing.Dict[str, typing.Any] = {
		"pattern": list(pattern),
		"velocity": _velocity_lane(pattern, basedrum.constants.velocity.ROLE_VELOCITY[name]),
		"muted": False,
		"volume": ONBOARDING_VOLUMES[name],
	}

	if notes is not None:
		track["notes"] = list(notes)

	return track


def build_onboarding_song (
	user_data: typing.Optional[basedrum.user_data.UserDataVector],
	title: str = "My BaseDrum Beat",
	created: typing.Optional[str] = None
) -> basedrum.song.SongDocument:

	"""
	Build the one-bar onboarding loop: kick, clap, bass and (when there is a
	usable address) the wallet acid line.
	"""

	if user_data is None:
		user_data = basedrum.user_data.UserDataVector()

	bass = bass_pattern(user_data.onchain.token_count)
	melody = wallet_melody(user_data.address)

	tracks = {
		"kick": _track("kick", kick_pattern(user_data.onchain.transaction_count)),
		"clap": _track("clap", clap_pattern(user_data.farcaster.follower_count)),
		"bass": _track("bass", bass, [BASS_ROOT_NOTE] * len(bass)),
	}

	if melody:
		tracks["acid"] = _track("acid", [step for step, _ in melody], [note for _, note in melody])
	else:
		logger.debug("No usable wallet address; onboarding song has no acid line")

	metadata = basedrum.song.make_metadata(title, ONBOARDING_BPM, bars=1, created=created)

	return basedrum.song.validate_song({
		"metadata": metadata.model_dump(by_alias=True, mode="json"),
		"effects": basedrum.song.neutral_effects(),
		"tracks": tracks,
	})
