"""Client for the remote producer that turns a loop into a 32-bar arrangement.

The service receives a song document as JSON and answers with a longer one.
Responses are not trusted: the first ``{...}`` block in the body is parsed,
validated as a document, and checked against the expansion contract (32
bars, 512 steps, the same tracks, a new title).  Anything else raises
:class:`ExpansionError`, and the caller keeps playing what it had.

The HTTP call blocks, so :meth:`ExpansionClient.expand` runs it in the
event loop's default executor, away from the sequencer's clock.
"""

import asyncio
import json
import logging
import re
import typing

import requests

import basedrum.constants
import basedrum.song


logger = logging.getLogger(__name__)


# Greedy: from the first "{" to the last "}" so surrounding prose is dropped
_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class ExpansionError (RuntimeError):

	"""The remote expansion failed.  The current document stays in use."""


def extract_json (text: str) -> typing.Any:

	"""
	Pull the JSON object out of a response body that may carry extra text.

	Raises:
		ExpansionError: When there is no ``{...}`` block or it does not parse.
	"""

	match = _JSON_BLOCK.search(text or "")

	if match is None:
		raise ExpansionError("No JSON found in expansion response")

	try:
		return json.loads(match.group(0))
	except json.JSONDecodeError as exc:
		raise ExpansionError(f"Invalid JSON in expansion response: {exc.msg}") from exc


def check_expansion (original: basedrum.song.SongDocument, expanded: basedrum.song.SongDocument) -> None:

	"""
	Raise :class:`ExpansionError` unless ``expanded`` honours the contract for
	an expansion of ``original``.
	"""

	problems: typing.List[str] = []

	if expanded.metadata.bars != basedrum.constants.EXPANDED_BARS:
		problems.append(f"bars is {expanded.metadata.bars}, expected {basedrum.constants.EXPANDED_BARS}")

	if expanded.metadata.steps != basedrum.constants.EXPANDED_STEPS:
		problems.append(f"steps is {expanded.metadata.steps}, expected {basedrum.constants.EXPANDED_STEPS}")

	if set(expanded.tracks) != set(original.tracks):
		problems.append(f"track set changed from {sorted(original.tracks)} to {sorted(expanded.tracks)}")

	if expanded.metadata.title == original.metadata.title:
		problems.append("title was not changed")

	if problems:
		raise ExpansionError("Expansion response rejected: " + "; ".join(problems))


class ExpansionClient:

	"""
	Sends a document to the expansion endpoint and returns the validated result.

	Example:
		```python
		client = ExpansionClient("http://localhost:3000/api/improve-song", timeout=90)
		expanded = await client.expand(document)
		```
	"""

	def __init__ (self, endpoint: str, timeout: float = 60.0, session: typing.Optional[requests.Session] = None) -> None:

		if not endpoint:
			raise ValueError("An expansion endpoint URL is required")

		self.endpoint = endpoint
		self.timeout = timeout
		self._session = session

	def _post (self, payload: typing.Dict[str, typing.Any]) -> str:

		poster = self._session if self._session is not None else requests

		try:
			response = poster.post(self.endpoint, json=payload, timeout=self.timeout)
			response.raise_for_status()
		except requests.RequestException as exc:
			raise ExpansionError(f"Expansion request failed: {exc}") from exc

		return response.text

	def expand_sync (self, document: basedrum.song.SongDocument) -> basedrum.song.SongDocument:

		"""Blocking version of :meth:`expand`."""

		logger.info(f"Requesting expansion of '{document.metadata.title}' from {self.endpoint}")

		text = self._post(basedrum.song.song_to_dict(document))
		data = extract_json(text)

		try:
			expanded = basedrum.song.validate_song(data)
		except basedrum.song.SongValidationError as exc:
			raise ExpansionError(f"Expansion response failed validation: {exc}") from exc

		check_expansion(document, expanded)

		logger.info(f"Expansion returned '{expanded.metadata.title}' ({expanded.steps} steps)")

		return expanded

	async def expand (self, document: basedrum.song.SongDocument) -> basedrum.song.SongDocument:

		"""
		Expand ``document`` without blocking the event loop.

		Raises:
			ExpansionError: On network failure, a non-JSON body, a body that
				is not a valid document, or a contract mismatch.
		"""

		loop = asyncio.get_running_loop()

		return await loop.run_in_executor(None, self.expand_sync, document)
