import argparse
import asyncio
import json
import logging
import sys
import typing

import basedrum.arrangement
import basedrum.config
import basedrum.constants
import basedrum.osc
import basedrum.pattern_generator
import basedrum.session
import basedrum.song
import basedrum.threshold_patterns
import basedrum.user_data
import basedrum.voices
import basedrum.web_ui


logger = logging.getLogger(__name__)


def _read_user_data (path: typing.Optional[str]) -> typing.Optional[basedrum.user_data.UserDataVector]:

	"""User data from a JSON file, or ``None`` (defaults) without one."""

	if path is None:
		return None

	with open(path, "r") as f:
		payload = json.load(f)

	try:
		return basedrum.user_data.UserDataVector.from_dict(payload)
	except TypeError as exc:
		raise ValueError(f"{path}: {exc}") from exc


def _read_song (path: str) -> basedrum.song.SongDocument:

	with open(path, "r") as f:
		return basedrum.song.parse_song_json(f.read())


def _write_song (document: basedrum.song.SongDocument, path: typing.Optional[str]) -> None:

	text = basedrum.song.song_to_json(document)

	if path is None:
		print(text)
		return

	with open(path, "w") as f:
		f.write(text + "\n")

	logger.info(f"Wrote '{document.metadata.title}' to {path}")


def cmd_generate (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	user_data = _read_user_data(args.user_data)
	tracks = basedrum.pattern_generator.generate_tracks(user_data)

	for track in tracks:
		logger.info(f"{track.name}: {track.reason}")

	_write_song(basedrum.pattern_generator.generate_song(user_data, title=args.title), args.output)

	return 0


def cmd_onboard (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	user_data = _read_user_data(args.user_data)

	for message in (
		basedrum.threshold_patterns.kick_message(user_data),
		basedrum.threshold_patterns.clap_message(user_data),
		basedrum.threshold_patterns.bass_message(user_data),
		basedrum.threshold_patterns.melody_message(user_data.address if user_data else None),
	):
		logger.info(message)

	_write_song(basedrum.threshold_patterns.build_onboarding_song(user_data, title=args.title or "My BaseDrum Beat"), args.output)

	return 0


def cmd_validate (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	try:
		document = _read_song(args.song)
	except basedrum.song.SongValidationError as exc:
		for issue in exc.issues:
			print(issue, file=sys.stderr)
		return 1

	print(f"OK: '{document.metadata.title}' - {document.bars} bars, {len(document.tracks)} tracks at {document.metadata.bpm} BPM")

	return 0


def cmd_expand (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	_write_song(basedrum.arrangement.expand_song(_read_song(args.song), bars=args.bars), args.output)

	return 0


async def _play (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	session = basedrum.session.Session(config)

	if args.song:
		session.load(_read_song(args.song))
	else:
		session.generate(_read_user_data(args.user_data))

	bridges: typing.List[typing.Any] = []

	if config.osc_enabled:
		bridges.append(basedrum.osc.OscBridge(session, config.osc_receive_port, config.osc_send_port, config.osc_send_host))

	if config.web_ui_enabled:
		bridges.append(basedrum.web_ui.StepBroadcaster(session, config.ws_port))

	try:
		await session.initialize()
	except basedrum.voices.EngineInitError as exc:
		logger.error(str(exc))
		return 1

	for bridge in bridges:
		await bridge.start()

	try:
		await session.play()

		if args.seconds:
			await asyncio.sleep(args.seconds)
		else:
			# Until interrupted
			await asyncio.Event().wait()

	finally:
		for bridge in bridges:
			await bridge.stop()
		await session.dispose()

	return 0


def cmd_play (args: argparse.Namespace, config: basedrum.config.SessionConfig) -> int:

	try:
		return asyncio.run(_play(args, config))
	except KeyboardInterrupt:
		logger.info("Interrupted")
		return 0


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="basedrum", description="Turn identity data into drum patterns and play them.")
	commands = parser.add_subparsers(dest="command", required=True)

	def add (name: str, handler: typing.Callable[..., int], help_text: str) -> argparse.ArgumentParser:
		sub = commands.add_parser(name, help=help_text)
		sub.add_argument("--config", default="config.yaml", help="YAML configuration file")
		sub.set_defaults(handler=handler)
		return sub

	generate = add("generate", cmd_generate, "generate a loop from user data")
	generate.add_argument("--user-data", help="user data JSON file (defaults when omitted)")
	generate.add_argument("--title")
	generate.add_argument("-o", "--output", help="write the song here instead of stdout")

	onboard = add("onboard", cmd_onboard, "build the rule-based onboarding loop")
	onboard.add_argument("--user-data", help="user data JSON file (defaults when omitted)")
	onboard.add_argument("--title")
	onboard.add_argument("-o", "--output", help="write the song here instead of stdout")

	validate = add("validate", cmd_validate, "check a song document")
	validate.add_argument("song", help="song JSON file")

	expand = add("expand", cmd_expand, "expand a loop into an arrangement")
	expand.add_argument("song", help="song JSON file")
	expand.add_argument("--bars", type=int, default=basedrum.constants.EXPANDED_BARS)
	expand.add_argument("-o", "--output", help="write the song here instead of stdout")

	play = add("play", cmd_play, "play a song through MIDI")
	play.add_argument("song", nargs="?", help="song JSON file (generates one when omitted)")
	play.add_argument("--user-data", help="user data JSON file used when no song is given")
	play.add_argument("--seconds", type=float, help="stop after this many seconds")

	return parser


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the basedrum command.
	"""

	args = build_parser().parse_args(argv)

	try:
		config = basedrum.config.load_config(args.config)
	except basedrum.config.ConfigError as exc:
		logging.basicConfig(level=logging.INFO)
		logger.error(str(exc))
		return 2

	logging.basicConfig(level=getattr(logging, config.log_level))

	try:
		return args.handler(args, config)
	except basedrum.song.SongValidationError as exc:
		logger.error(str(exc))
		return 1
	except OSError as exc:
		logger.error(str(exc))
		return 1
	except ValueError as exc:
		logger.error(f"Invalid input: {exc}")
		return 1


if __name__ == "__main__":
	sys.exit(main())
