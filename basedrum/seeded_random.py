"""Deterministic pseudo-random numbers keyed by a user's identity.

All stochastic choices in the generators draw from a :class:`SeededRandom`.
Nothing in the package calls the module-level ``random`` functions, so the
same identity always produces the same track.
"""

import random
import typing

import basedrum.constants
import basedrum.constraints
import basedrum.user_data


_MODULUS = 2 ** 32
_MULTIPLIER = 1664525
_INCREMENT = 1013904223


class SeededRandom (random.Random):

	"""
	Linear-congruential generator with the ``random.Random`` interface.

	``state = (state * 1664525 + 1013904223) mod 2**32`` and ``random()``
	returns ``state / 2**32``.  Because it subclasses ``random.Random``,
	helpers such as ``choice``, ``shuffle`` and ``randint`` draw from the same
	reproducible stream.

	Not cryptographically secure; only reproducibility matters here.

	Example:
		```python
		rng = SeededRandom(42)
		a = [rng.random() for _ in range(3)]
		rng.seed(42)
		assert a == [rng.random() for _ in range(3)]
		```
	"""

	def __init__ (self, seed: typing.Optional[int] = None) -> None:

		self._state = 0
		super().__init__(seed)

	def seed (self, a: typing.Any = None, version: int = 2) -> None:

		"""Reset the stream.  ``None`` means the package default seed."""

		if a is None:
			a = basedrum.constants.DEFAULT_SEED

		self._state = int(a) % _MODULUS
		self.gauss_next = None

	def random (self) -> float:

		self._state = (self._state * _MULTIPLIER + _INCREMENT) % _MODULUS

		return self._state / _MODULUS

	def getstate (self) -> typing.Tuple[int, typing.Optional[float]]:

		return (self._state, self.gauss_next)

	def setstate (self, state: typing.Tuple[int, typing.Optional[float]]) -> None:

		self._state, self.gauss_next = state


def create_seed (user_data: typing.Optional[basedrum.user_data.UserDataVector]) -> int:

	"""
	Derive a seed in [0, 10000) from the address, follower count and
	transaction count.  With no data the fixed default seed is used.
	"""

	if user_data is None:
		return basedrum.constants.DEFAULT_SEED

	key = f"{user_data.address or 'default'}{user_data.farcaster.follower_count}{user_data.onchain.transaction_count}"

	return basedrum.constraints.hash_string(key) % basedrum.constants.SEED_MODULUS
