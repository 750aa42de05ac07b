import typing

import mido
import pytest

import basedrum.user_data


class FakeMidiOut:

	"""Minimal MIDI output stub for tests.  Keeps every message sent."""

	def __init__ (self) -> None:

		self.messages: list[mido.Message] = []
		self.closed = False
		self.panicked = False


	def send (self, message: mido.Message) -> None:

		"""Record outgoing MIDI messages."""

		self.messages.append(message)


	def close (self) -> None:

		"""Mark the fake device closed."""

		self.closed = True


	def panic (self) -> None:

		"""Record that all notes were silenced."""

		self.panicked = True


	def reset (self) -> None:

		"""No-op reset for the fake device."""

		return None


# Module-level reference so tests can inspect the most recently opened FakeMidiOut.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture
def fake_output (patch_midi: None) -> typing.Callable[[], typing.Optional[FakeMidiOut]]:

	"""Return a getter for the most recently opened fake output."""

	return lambda: _current_fake_output


@pytest.fixture
def scenario_user () -> basedrum.user_data.UserDataVector:

	"""A mid-activity user: 150 transactions, 300/50 followers, 2.5 ETH, 12 tokens, 3 NFTs."""

	return basedrum.user_data.UserDataVector.from_dict({
		"wallet": {"address": "0x1234567890abcdef1234567890abcdef12345678", "balance": "2.5", "isConnected": True},
		"onchain": {"transactionCount": 150, "tokenCount": 12, "nftCount": 3},
		"farcaster": {"followerCount": 300, "followingCount": 50},
	})


@pytest.fixture
def empty_user () -> basedrum.user_data.UserDataVector:

	"""The all-A address with no activity at all."""

	return basedrum.user_data.UserDataVector.from_dict({
		"wallet": {"address": "0x" + "A" * 40},
		"onchain": {"transactionCount": 0},
		"farcaster": {"followerCount": 0},
	})
